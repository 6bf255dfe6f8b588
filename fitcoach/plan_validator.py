"""
Validation of generated workout blueprints and meal plans.

Pure functions: every numeric and structural constraint computed before
generation is re-checked here. Only ``errors`` gate acceptance.
"""

from fitcoach.exercise_normalizer import canonical_key
from fitcoach.progression_rules import format_load, parse_rep_range


def _parse_float(value):
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_int(value):
    number = _parse_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


DEFAULT_RULES = {
    "weight_tolerance": 0.1,
    "max_reasonable_weight": 500,
    # kcal from the day target: beyond the error tier rejects, beyond the
    # warning tier only warns. Lower both to 50 / 25 for the stricter pairing.
    "calorie_error_tolerance": 100,
    "calorie_warning_tolerance": 50,
    "reference_calorie_tolerance": 1,
    "min_meals": 3,
    "max_meals": 5,
    "meal_calorie_bounds": (100, 1500),
    "meal_protein_bounds": (0, 100),
    "protein_buffer": 1.1,
}


def _rules(overrides):
    rules = dict(DEFAULT_RULES)
    for key, value in (overrides or {}).items():
        if key in rules and value is not None:
            rules[key] = value
    return rules


def _add_violation(violations, code, message, item=None):
    violations.append(
        {
            "code": code,
            "message": message,
            "item": item or "",
        }
    )


def _result(errors, warnings, summary):
    return {
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "summary": summary,
    }


def error_messages(result):
    return [v["message"] for v in result.get("errors", [])]


def _name_key(name):
    return str(name or "").strip().lower()


def _allowed_lookup(allowed):
    """Allowed items keyed by trimmed lower-case name; aliases do not match."""
    lookup = {}
    for item in allowed or []:
        if isinstance(item, str):
            item = {"name": item}
        key = _name_key(item.get("name"))
        if key and key not in lookup:
            lookup[key] = item
    return lookup


def _lists_exercise(lookup, name):
    key = canonical_key(name)
    return any(canonical_key(item.get("name")) == key for item in lookup.values())


def _target_for(targets, name):
    key = canonical_key(name)
    for target_name, target in (targets or {}).items():
        if canonical_key(target_name) == key:
            return target
    return None


def _check_sets(sets, name, target, rep_range, rules, errors, warnings):
    """Per-set sanity, progression match and rep-range checks for one exercise."""
    bounds = parse_rep_range(rep_range)
    for number, entry in enumerate(sets, start=1):
        weight = _parse_float(entry.get("weight"))
        reps = _parse_int(entry.get("reps"))
        label = f"{name} set {number}"

        if weight is None:
            _add_violation(errors, "missing_weight", f"{label}: weight is missing.", name)
        elif weight < 0:
            _add_violation(errors, "negative_weight", f"{label}: weight {format_load(weight)} is negative.", name)
        elif weight > rules["max_reasonable_weight"]:
            _add_violation(
                warnings,
                "excessive_weight",
                f"{label}: weight {format_load(weight)} exceeds {rules['max_reasonable_weight']}.",
                name,
            )

        if reps is None or reps < 1:
            _add_violation(errors, "invalid_reps", f"{label}: reps must be at least 1.", name)
            continue

        if target is not None and weight is not None:
            if abs(weight - float(target["next_weight"])) > rules["weight_tolerance"] or reps != int(target["target_reps"]):
                _add_violation(
                    errors,
                    "progression_mismatch",
                    (
                        f"{label}: expected {format_load(target['next_weight'])} x {target['target_reps']}, "
                        f"got {format_load(weight)} x {reps}."
                    ),
                    name,
                )

        if bounds and not (bounds[0] <= reps <= bounds[1]):
            _add_violation(
                warnings,
                "rep_range",
                f"{label}: {reps} reps is outside the {rep_range} range.",
                name,
            )


def _validate_cardio(exercises, intent, targets, lookup, rules, errors, warnings):
    entry = exercises[0]
    name = str(entry.get("exercise") or "").strip()
    target_name = intent.get("target_exercise")
    if target_name and _lists_exercise(lookup, target_name) and canonical_key(name) != canonical_key(target_name):
        _add_violation(
            errors,
            "cardio_target",
            f"Cardio session must be '{target_name}', got '{name}'.",
            name,
        )

    sets = entry.get("sets") or []
    if len(sets) != 1:
        _add_violation(errors, "set_count", f"{name}: cardio uses exactly 1 set, got {len(sets)}.", name)
        return

    weight = _parse_float(sets[0].get("weight"))
    distance = _parse_float(sets[0].get("distance"))
    if weight not in (None, 0.0):
        _add_violation(errors, "cardio_weight", f"{name}: cardio weight must be 0.", name)
    if distance is None or distance <= 0:
        _add_violation(errors, "cardio_distance", f"{name}: distance must be positive.", name)
        return

    target = _target_for(targets, name)
    if target and target.get("distance") is not None:
        if abs(distance - float(target["distance"])) > rules["weight_tolerance"]:
            _add_violation(
                errors,
                "cardio_distance",
                f"{name}: expected distance {target['distance']:.1f}, got {distance:.1f}.",
                name,
            )


def validate_workout_blueprint(blueprint, intent, targets, allowed, rules=None):
    """
    Check a generated workout against its intent, targets and allowed list.

    Args:
        blueprint: {"title", "exercises": [{"exercise", "sets": [{"weight", "reps"}]}]}
        intent: the WorkoutIntent used to build the prompt.
        targets: {exercise_name: {"next_weight", "target_reps"}}.
        allowed: exercise dicts (name, is_compound) or bare names.

    Returns:
        dict with keys: valid, errors, warnings, summary
    """
    rules = _rules(rules)
    errors = []
    warnings = []
    exercises = (blueprint or {}).get("exercises") or []
    lookup = _allowed_lookup(allowed)

    expected = int(intent.get("compound_count", 0)) + int(intent.get("accessory_count", 0))
    if len(exercises) != expected:
        _add_violation(
            errors,
            "exercise_count",
            f"Expected {expected} exercises, got {len(exercises)}.",
        )

    if not exercises:
        return _result(errors, warnings, "Validation: no exercises in blueprint.")

    seen = set()
    for entry in exercises:
        name = str(entry.get("exercise") or "").strip()
        key = canonical_key(name)
        if _name_key(name) not in lookup:
            _add_violation(
                errors,
                "not_allowed",
                f"Exercise '{name}' is not in the allowed exercise list.",
                name,
            )
        if key in seen:
            _add_violation(errors, "duplicate_exercise", f"Exercise '{name}' appears more than once.", name)
        seen.add(key)

    if intent.get("workout_type") == "cardio":
        if len(exercises) == 1:
            _validate_cardio(exercises, intent, targets, lookup, rules, errors, warnings)
        summary = f"Validation: cardio session checked, {len(errors)} error(s), {len(warnings)} warning(s)."
        return _result(errors, warnings, summary)

    target_name = intent.get("target_exercise")
    if target_name and _lists_exercise(lookup, target_name):
        first = str(exercises[0].get("exercise") or "")
        if canonical_key(first) != canonical_key(target_name):
            _add_violation(
                errors,
                "primary_lift_order",
                f"Primary lift '{target_name}' must be the first exercise, got '{first}'.",
                first,
            )

    rep_ranges = intent.get("rep_ranges") or {}
    for entry in exercises:
        name = str(entry.get("exercise") or "").strip()
        allowed_item = lookup.get(_name_key(name))
        sets = entry.get("sets") or []
        if allowed_item is None:
            continue

        category = "compound" if allowed_item.get("is_compound") else "accessory"
        expected_sets = int(intent.get(f"{category}_sets", 0))
        if len(sets) != expected_sets:
            _add_violation(
                errors,
                "set_count",
                f"{name}: expected {expected_sets} {category} sets, got {len(sets)}.",
                name,
            )

        _check_sets(sets, name, _target_for(targets, name), rep_ranges.get(category), rules, errors, warnings)

    summary = (
        f"Validation: {len(exercises)} exercises checked, "
        f"{len(errors)} error(s), {len(warnings)} warning(s)."
    )
    return _result(errors, warnings, summary)


def validate_exercise_swap(entry, expected_sets, target, allowed, existing_names, rep_range=None, rules=None):
    """
    Check one replacement exercise for a partially regenerated session.

    The replacement must be allowed, new to the session, keep the replaced
    set count and follow its progression target.
    """
    rules = _rules(rules)
    errors = []
    warnings = []
    name = str((entry or {}).get("exercise") or "").strip()
    key = canonical_key(name)

    if _name_key(name) not in _allowed_lookup(allowed):
        _add_violation(errors, "not_allowed", f"Exercise '{name}' is not in the allowed exercise list.", name)
    if key in {canonical_key(n) for n in existing_names or []}:
        _add_violation(errors, "duplicate_exercise", f"Exercise '{name}' is already in this session.", name)

    sets = (entry or {}).get("sets") or []
    if len(sets) != expected_sets:
        _add_violation(errors, "set_count", f"{name}: expected {expected_sets} sets, got {len(sets)}.", name)

    _check_sets(sets, name, target, rep_range, rules, errors, warnings)
    return _result(errors, warnings, f"Validation: swap to '{name}', {len(errors)} error(s).")


def _meal_protein(meal, reference, errors, warnings):
    reference_protein = _parse_float(reference.get("protein")) if reference else None
    stated = _parse_float(meal.get("protein"))
    name = meal.get("name")
    if reference_protein is not None:
        if stated is not None and abs(stated - reference_protein) > 1:
            _add_violation(
                errors,
                "meal_protein_mismatch",
                f"{name}: protein {stated:g}g does not match the reference {reference_protein:g}g.",
                name,
            )
        return reference_protein
    if stated is None:
        _add_violation(warnings, "protein_unknown", f"{name}: no protein value.", name)
        return 0.0
    _add_violation(warnings, "protein_unverified", f"{name}: protein {stated:g}g has no reference value.", name)
    return stated


def validate_meal_plan(plan, nutrition_intent, allowed_meals, rules=None):
    """
    Check a generated meal plan against nutrition targets and allowed meals.

    Calorie totals more than ``calorie_error_tolerance`` from target are
    errors; beyond ``calorie_warning_tolerance`` only a warning. Protein under
    the minimum is an error.

    Returns:
        dict with keys: valid, errors, warnings, summary
    """
    rules = _rules(rules)
    errors = []
    warnings = []
    meals = (plan or {}).get("meals") or []
    lookup = _allowed_lookup(allowed_meals)

    if not meals:
        _add_violation(errors, "no_meals", "Meal plan contains no meals.")
        return _result(errors, warnings, "Validation: no meals in plan.")

    if not (rules["min_meals"] <= len(meals) <= rules["max_meals"]):
        _add_violation(
            warnings,
            "meal_count",
            f"{len(meals)} meals planned; expected {rules['min_meals']}-{rules['max_meals']}.",
        )

    total_calories = 0.0
    total_protein = 0.0
    seen = set()
    low_cal, high_cal = rules["meal_calorie_bounds"]
    low_pro, high_pro = rules["meal_protein_bounds"]

    for meal in meals:
        name = str(meal.get("name") or "").strip()
        key = canonical_key(name)
        reference = lookup.get(_name_key(name))
        if reference is None:
            _add_violation(errors, "not_allowed", f"Meal '{name}' is not in the allowed meal list.", name)

        if key in seen:
            _add_violation(warnings, "duplicate_meal", f"Meal '{name}' appears more than once.", name)
        seen.add(key)

        calories = _parse_float(meal.get("calories"))
        reference_calories = _parse_float(reference.get("calories")) if reference else None
        if reference_calories is not None:
            if calories is None or abs(calories - reference_calories) > rules["reference_calorie_tolerance"]:
                _add_violation(
                    errors,
                    "meal_calorie_mismatch",
                    f"{name}: calories must be {reference_calories:g}, got {meal.get('calories')}.",
                    name,
                )
            calories = reference_calories
        if calories is None:
            _add_violation(errors, "missing_calories", f"{name}: calories are missing.", name)
            calories = 0.0

        protein = _meal_protein(meal, reference, errors, warnings)

        if not (low_cal <= calories <= high_cal):
            _add_violation(warnings, "meal_calorie_bounds", f"{name}: {calories:g} kcal is unusual for one meal.", name)
        if not (low_pro <= protein <= high_pro):
            _add_violation(warnings, "meal_protein_bounds", f"{name}: {protein:g}g protein is unusual for one meal.", name)

        total_calories += calories
        total_protein += protein

    target = float(nutrition_intent["calorie_target"])
    diff = abs(total_calories - target)
    if diff > rules["calorie_error_tolerance"]:
        _add_violation(
            errors,
            "calorie_total",
            f"Total calories {total_calories:g} are {diff:g} away from the {target:g} target.",
        )
    elif diff > rules["calorie_warning_tolerance"]:
        _add_violation(
            warnings,
            "calorie_total",
            f"Total calories {total_calories:g} are {diff:g} away from the {target:g} target.",
        )

    protein_min = float(nutrition_intent["protein_min"])
    if total_protein < protein_min:
        _add_violation(
            errors,
            "protein_below_minimum",
            f"Total protein {total_protein:g}g is below the {protein_min:g}g minimum.",
        )
    elif total_protein < protein_min * rules["protein_buffer"]:
        _add_violation(
            warnings,
            "protein_near_minimum",
            f"Total protein {total_protein:g}g is close to the {protein_min:g}g minimum.",
        )

    summary = (
        f"Validation: {len(meals)} meals, {total_calories:g} kcal, {total_protein:g}g protein, "
        f"{len(errors)} error(s), {len(warnings)} warning(s)."
    )
    return _result(errors, warnings, summary)
