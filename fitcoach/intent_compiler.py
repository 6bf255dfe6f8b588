"""
Goal + history -> WorkoutIntent / NutritionIntent.

Everything here is deterministic and side-effect free: the active goal and
the history window are passed in, never fetched.
"""

import math
from datetime import date, timedelta

from fitcoach.exercise_normalizer import (
    BODY_PARTS,
    CARDIO_OPTIONS,
    body_part_matches,
    canonical_key,
    expand_with_parents,
    get_normalizer,
    normalize_body_part,
)
from fitcoach.split_templates import get_split_template
from fitcoach.weekly_split import intensity_for_date


GOAL_CATEGORIES = ("body_composition", "strength", "endurance", "mobility", "skill")
DIRECTIONS = ("increase", "decrease", "achieve")

DEFAULT_ROTATION = ["chest", "upper back", "lats"]

MOBILITY_KEYWORDS = [
    (("hip", "squat", "leg"), ["quads", "hamstrings", "glutes", "hip flexors"]),
    (("shoulder", "overhead", "arm"), ["front delts", "lateral delts", "rear delts", "upper back"]),
    (("spine", "back", "twist"), ["upper back", "lower back", "core"]),
    (("ankle", "foot", "calf"), ["calves", "ankles"]),
]

# Checked in order; the first keyword hit wins.
SKILL_REQUIREMENTS = [
    (("pistol", "single leg squat"), ["quads", "hamstrings", "glutes", "calves", "core"]),
    (("pull-up", "chin-up"), ["lats", "biceps", "upper back", "rear delts"]),
    (("muscle-up",), ["lats", "biceps", "upper back", "rear delts", "chest", "triceps"]),
    (("handstand",), ["front delts", "lateral delts", "rear delts", "core", "upper back"]),
    (("push-up",), ["chest", "triceps", "front delts", "core"]),
    (("dip",), ["chest", "triceps", "front delts"]),
    (("squat", "lunge"), ["quads", "hamstrings", "glutes", "calves"]),
    (("deadlift", "hinge"), ["hamstrings", "glutes", "lower back", "traps"]),
]

BODY_COMPOSITION_REPS = {
    "decrease": {"compound": "10-12", "accessory": "12-15"},
    "increase": {"compound": "6-8", "accessory": "8-10"},
}

PRIMARY_TEST_WINDOW = 8

ACTIVITY_FACTOR = 1.55
DEFAULT_AGE = 30


def _round_half_up(value, step=1):
    return int(math.floor(value / step + 0.5) * step)


def _goal_target(goal):
    return (goal or {}).get("target") or {}


def _target_name(goal):
    target = _goal_target(goal)
    return (target.get("exercise") or target.get("movement") or "").strip()


def _as_date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _session_parts(session):
    return [normalize_body_part(p) for p in session.get("body_parts") or []]


def rotate_body_parts(recent_workouts):
    """
    Next three body parts in rotation, skipping anything trained in the last
    three sessions.
    """
    recent = set()
    for session in (recent_workouts or [])[-3:]:
        recent.update(_session_parts(session))

    available = [part for part in BODY_PARTS if part not in recent]
    if len(available) >= 3:
        return available[:3]
    if available:
        topped = available + [part for part in BODY_PARTS if part not in available]
        return topped[:3]

    if recent_workouts:
        last_parts = _session_parts(recent_workouts[-1])
        last_index = next((i for i, part in enumerate(BODY_PARTS) if part in last_parts), -1)
        start = last_index + 1
        return [BODY_PARTS[(start + k) % len(BODY_PARTS)] for k in range(3)]

    return list(DEFAULT_ROTATION)


def determine_split_day(template, recent_workouts, yesterday=None):
    """
    1-indexed day of the split cycle to train next.

    The last session is matched to the template day with the most body-part
    overlap. A missed day (no session yesterday) repeats that day; otherwise
    the cycle advances. No history or no overlap starts at day 1.
    """
    days = template["days"]
    if not recent_workouts:
        return 1

    last_parts = set(_session_parts(recent_workouts[-1]))
    best_day, best_score = None, -1
    for split_day in days:
        day_parts = [normalize_body_part(p) for p in split_day["body_parts"]]
        score = 0
        for part in last_parts:
            if any(part in day_part or day_part in part for day_part in day_parts):
                score += 1
        if score > best_score:
            best_day, best_score = split_day["day"], score

    if best_day is None or best_score == 0:
        return 1

    if yesterday is not None:
        yesterday = _as_date(yesterday).isoformat()
        if not any(str(s.get("date")) == yesterday for s in recent_workouts):
            return best_day

    return (best_day % len(days)) + 1


def is_primary_lift_day(day_parts, primary_parts):
    return any(
        body_part_matches(part, lift_part)
        for part in day_parts
        for lift_part in primary_parts
    )


def split_day_body_parts(template, split_day, primary_parts=None):
    """Body parts for a split day, with primary-lift muscles first on the lift's day."""
    days = template["days"]
    today = days[(split_day - 1) % len(days)]
    day_parts = [normalize_body_part(p) for p in today["body_parts"]]

    if primary_parts and is_primary_lift_day(day_parts, primary_parts):
        merged = []
        for part in list(primary_parts) + day_parts:
            part = normalize_body_part(part)
            if part not in merged:
                merged.append(part)
        return today["name"], merged, True

    return today["name"], day_parts, False


def should_test_primary_lift(lift_name, recent_workouts, template, split_day):
    """
    True when the primary lift is missing from the last PRIMARY_TEST_WINDOW
    sessions of the same split-day type (about two weeks of that day).
    """
    days = template["days"]
    today_parts = [normalize_body_part(p) for p in days[(split_day - 1) % len(days)]["body_parts"]]

    same_type = []
    for session in recent_workouts or []:
        parts = _session_parts(session)
        if any(tp in sp or sp in tp for tp in today_parts for sp in parts if sp):
            same_type.append(session)

    lift = (lift_name or "").strip().lower()
    for session in same_type[-PRIMARY_TEST_WINDOW:]:
        for exercise in session.get("exercises") or []:
            name = str(exercise.get("name") or "").strip().lower()
            if name and (lift in name or name in lift):
                return False
    return True


def check_fatigue_intensity(intensity, recent_workouts):
    """Three straight strengthen/heavy sessions force a recovery day."""
    last_three = (recent_workouts or [])[-3:]
    if len(last_three) < 3:
        return intensity
    if all(s.get("intensity") == "strengthen" for s in last_three):
        return "recover"
    if all(s.get("intensity") == "heavy" for s in last_three):
        return "recover"
    return intensity


def _pick_cardio(goal, recent_workouts):
    target = _target_name(goal)
    if target:
        return target.lower()

    used = set()
    for session in (recent_workouts or [])[-7:]:
        for exercise in session.get("exercises") or []:
            used.add(canonical_key(exercise.get("name")))

    def _used(option):
        key = canonical_key(option)
        return any(key in name or name in key for name in used if name)

    for option in CARDIO_OPTIONS:
        if not _used(option):
            return option

    # Everything was used recently: continue the cycle after the latest option.
    last_names = [canonical_key(e.get("name")) for e in (recent_workouts[-1].get("exercises") or [])]
    last_index = -1
    for i, option in enumerate(CARDIO_OPTIONS):
        if canonical_key(option) in last_names:
            last_index = i
    return CARDIO_OPTIONS[(last_index + 1) % len(CARDIO_OPTIONS)]


def _keyword_parts(text, table):
    text = (text or "").lower()
    for keywords, parts in table:
        if any(keyword in text for keyword in keywords):
            return list(parts)
    return None


def _category_plan(goal, recent_workouts):
    """Base intent fields for the goal category, before split and fatigue rules."""
    category = goal.get("category")
    direction = goal.get("direction")
    target_name = _target_name(goal)

    if category == "strength":
        normalizer = get_normalizer()
        lift = normalizer.find_primary_lift(target_name) if target_name else None
        primary_parts = normalizer.supporting_muscles(lift) if lift else []
        body_parts = expand_with_parents(primary_parts) if primary_parts else rotate_body_parts(recent_workouts)
        return {
            "intensity": "strengthen",
            "compound_sets": 4,
            "accessory_sets": 2,
            "rep_ranges": {"compound": "4-6", "accessory": "8-10"},
            "body_parts": body_parts,
            "target_exercise": target_name.lower() if lift else None,
            "primary_parts": list(primary_parts),
            "workout_type": "main",
        }

    if category == "endurance":
        return {
            "intensity": "maintain",
            "compound_sets": 0,
            "accessory_sets": 0,
            "rep_ranges": {"compound": "N/A", "accessory": "N/A"},
            "body_parts": ["cardio"],
            "target_exercise": _pick_cardio(goal, recent_workouts),
            "primary_parts": [],
            "workout_type": "cardio",
        }

    if category == "mobility":
        parts = _keyword_parts(target_name, MOBILITY_KEYWORDS)
        return {
            "intensity": "maintain",
            "compound_sets": 2,
            "accessory_sets": 2,
            "rep_ranges": {"compound": "12-15", "accessory": "15-20"},
            "body_parts": parts or rotate_body_parts(recent_workouts),
            "target_exercise": target_name.lower() or None,
            "primary_parts": [],
            "workout_type": "main",
        }

    if category == "skill":
        parts = _keyword_parts(target_name, SKILL_REQUIREMENTS)
        return {
            "intensity": "maintain",
            "compound_sets": 2,
            "accessory_sets": 2,
            "rep_ranges": {"compound": "12-15", "accessory": "15-20"},
            "body_parts": parts or rotate_body_parts(recent_workouts),
            "target_exercise": target_name.lower() or None,
            "primary_parts": [],
            "workout_type": "main",
        }

    if category == "body_composition":
        return {
            "intensity": "maintain",
            "compound_sets": 3,
            "accessory_sets": 3,
            "rep_ranges": dict(BODY_COMPOSITION_REPS.get(direction, {"compound": "8-10", "accessory": "10-12"})),
            "body_parts": rotate_body_parts(recent_workouts),
            "target_exercise": None,
            "primary_parts": [],
            "workout_type": "main",
        }

    raise ValueError(f"Unknown goal category '{category}'. Expected one of: {', '.join(GOAL_CATEGORIES)}")


def exercise_counts(intensity, workout_type="main"):
    """(compound_count, accessory_count) for an intensity tier."""
    if workout_type == "cardio":
        return 1, 0
    if intensity == "strengthen":
        return 2, 2
    return 3, 3


def compile_workout_intent(goal, recent_workouts, on_date, split_type=None, weekly_sessions=None, fatigue=None):
    """
    Build the WorkoutIntent for one date.

    Args:
        goal: the active goal dict (required).
        recent_workouts: history window, oldest first.
        on_date: the date being planned.
        split_type: optional split template name; drives body-part rotation.
        weekly_sessions: optional WeeklySession list; its tier for the weekday
            can soften intensity.
        fatigue: optional detect_fatigue() result.
    """
    if not goal:
        raise ValueError("An active goal is required to compile a workout intent")

    on_date = _as_date(on_date)
    plan = _category_plan(goal, recent_workouts)
    split_day_name = None

    if split_type and plan["workout_type"] != "cardio":
        template = get_split_template(split_type)
        split_day = determine_split_day(template, recent_workouts, on_date - timedelta(days=1))
        split_day_name, body_parts, lift_day = split_day_body_parts(template, split_day, plan["primary_parts"])
        plan["body_parts"] = body_parts
        if plan["primary_parts"] and plan["target_exercise"]:
            # Only a due lift day pins the lift; otherwise the day trains around it.
            if not (lift_day and should_test_primary_lift(
                plan["target_exercise"], recent_workouts, template, split_day
            )):
                plan["target_exercise"] = None

    intensity = plan["intensity"]
    tier = intensity_for_date(weekly_sessions, on_date) if weekly_sessions else None
    if tier == "light":
        intensity = "recover"
    elif tier == "moderate" and intensity == "strengthen":
        intensity = "maintain"

    deload = bool(fatigue and fatigue.get("should_deload"))
    if deload:
        intensity = "recover"
    intensity = check_fatigue_intensity(intensity, recent_workouts)

    compound_count, accessory_count = exercise_counts(intensity, plan["workout_type"])
    return {
        "body_parts": plan["body_parts"],
        "intensity": intensity,
        "compound_sets": plan["compound_sets"],
        "accessory_sets": plan["accessory_sets"],
        "compound_count": compound_count,
        "accessory_count": accessory_count,
        "rep_ranges": plan["rep_ranges"],
        "target_exercise": plan["target_exercise"],
        "workout_type": plan["workout_type"],
        "split_day_name": split_day_name,
        "deload": deload,
    }


def compute_nutrition_intent(goal, weight_kg=None, height_cm=None):
    """
    Calorie target, protein floor and carb bias.

    Mifflin-St Jeor BMR for a 30-year-old at moderate activity (x1.55),
    adjusted by goal. Calories round to the nearest 50 with a 1200 floor.
    """
    weight_kg = float(weight_kg or 70)
    height_cm = float(height_cm or 175)
    bmr = 10 * weight_kg + 6.25 * height_cm - 5 * DEFAULT_AGE + 5
    tdee = bmr * ACTIVITY_FACTOR

    category = (goal or {}).get("category")
    direction = (goal or {}).get("direction")
    calories = tdee
    carb_bias = "moderate"
    if category == "body_composition" and direction == "decrease":
        calories, carb_bias = tdee - 625, "low"
    elif category == "body_composition" and direction == "increase":
        calories, carb_bias = tdee + 400, "high"
    elif category == "strength":
        calories = tdee + 200
    elif category == "endurance":
        calories, carb_bias = tdee + 300, "high"

    protein_per_kg = 1.6
    if category == "strength":
        protein_per_kg = 2.0
    elif category == "body_composition" and direction == "decrease":
        protein_per_kg = 2.2

    return {
        "calorie_target": max(1200, _round_half_up(calories, 50)),
        "protein_min": _round_half_up(weight_kg * protein_per_kg),
        "carb_bias": carb_bias,
    }


def compile_intents(goal, recent_workouts, on_date, profile=None, split_type=None, weekly_sessions=None, fatigue=None):
    """Both intents for one planning date."""
    profile = profile or {}
    workout_intent = compile_workout_intent(
        goal,
        recent_workouts,
        on_date,
        split_type=split_type,
        weekly_sessions=weekly_sessions,
        fatigue=fatigue,
    )
    nutrition_intent = compute_nutrition_intent(goal, profile.get("weight_kg"), profile.get("height_cm"))
    return workout_intent, nutrition_intent
