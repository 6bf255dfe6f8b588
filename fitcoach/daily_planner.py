"""
Daily plan orchestration: snapshot -> intents -> candidates -> generate/validate -> persist.
"""

import random
from datetime import date

from fitcoach.candidate_selector import filter_candidates, select_exercises, select_meals
from fitcoach.config import section
from fitcoach.errors import DuplicateSession, ImmutableItem, NoActiveGoal, NoCandidatesAvailable
from fitcoach.exercise_normalizer import canonical_key
from fitcoach.generation_context import build_generation_context
from fitcoach.generation_loop import GenerationLoop
from fitcoach.intent_compiler import compile_intents, compile_workout_intent, compute_nutrition_intent
from fitcoach.plan_validator import validate_exercise_swap, validate_meal_plan, validate_workout_blueprint
from fitcoach.progression_rules import (
    apply_deload,
    compute_cardio_target,
    compute_progression_targets,
    detect_fatigue,
)
from fitcoach.weekly_split import build_sessions_from_priorities, build_weekly_sessions


def _as_date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _by_name(items):
    return {canonical_key(item["name"]): item for item in items}


def _planned_values(planned):
    """(weight, reps, distance) from a validated set; reps may arrive as "6.0"."""
    distance = planned.get("distance")
    return (
        float(planned["weight"]),
        int(float(planned["reps"])),
        float(distance) if distance is not None else None,
    )


class DailyPlanner:
    """Entry points for generating and partially regenerating daily plans."""

    def __init__(self, store, generator, config=None, rng=None):
        """
        Args:
            store: WorkoutDB (or any object with the same collaborator methods)
            generator: PlanGenerator wrapping the text model
            config: full configuration dict
            rng: random.Random used for candidate selection
        """
        self.store = store
        self.generator = generator
        self.config = config or {}
        self.rng = rng or random.Random()
        self.generation = section(self.config, "generation")
        self.fatigue_rules = section(self.config, "fatigue")
        self.validation_rules = section(self.config, "validation")
        self.schedule = section(self.config, "schedule")
        self.profile_defaults = section(self.config, "profile")

    # -------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------

    def _selection_kwargs(self):
        return {
            "rng": self.rng,
            "recent_weight": float(self.generation["recent_weight"]),
            "fresh_weight": float(self.generation["fresh_weight"]),
        }

    def _profile(self, user):
        return {
            "weight_kg": (user or {}).get("weight_kg") or self.profile_defaults.get("weight_kg"),
            "height_cm": (user or {}).get("height_cm") or self.profile_defaults.get("height_cm"),
        }

    def _detect_fatigue(self, recent_workouts, on_date):
        return detect_fatigue(
            recent_workouts,
            on_date,
            lookback_days=int(self.fatigue_rules["lookback_days"]),
            failed_reps_threshold=float(self.fatigue_rules["failed_reps_threshold"]),
            high_rpe_threshold=float(self.fatigue_rules["high_rpe_threshold"]),
        )

    def _deload(self, target):
        return apply_deload(
            target,
            factor=float(self.fatigue_rules["deload_factor"]),
            rep_bump=int(self.fatigue_rules["deload_rep_bump"]),
        )

    def _weekly_sessions(self, user):
        split_type = (user or {}).get("split_type")
        if not split_type:
            return None
        return build_weekly_sessions(
            split_type,
            self.schedule.get("intensity_distribution"),
            (user or {}).get("days_per_week"),
        )

    def _pick_exercises(self, ctx, body_parts, count, is_compound, exclude_ids, priority_name=None):
        """Select outside this week's usage and the user's blocks; may return fewer than ``count``."""
        return select_exercises(
            ctx["exercises"],
            body_parts,
            count,
            exclude_ids=set(exclude_ids) | set(ctx["week_exercise_ids"]),
            blocked_ids=ctx["blocked_exercise_ids"],
            recent_ids=ctx["recent_exercise_ids"],
            is_compound=is_compound,
            priority_name=priority_name,
            required=False,
            **self._selection_kwargs(),
        )

    def _pick_meals(self, ctx, meal_types, count, pool=None):
        pool = ctx["meals"] if pool is None else pool
        chosen = select_meals(
            pool,
            meal_types,
            count,
            exclude_ids=ctx["week_meal_ids"],
            blocked_ids=ctx["blocked_meal_ids"],
            recent_ids=ctx["recent_meal_ids"],
            required=False,
            **self._selection_kwargs(),
        )
        if not chosen:
            raise NoCandidatesAvailable("meal", f"meal types: {', '.join(meal_types) or 'any'}")
        return chosen

    # -------------------------------------------------------------------
    # Workout side
    # -------------------------------------------------------------------

    def _workout_candidates(self, ctx, intent):
        """Allowed exercises for the intent; counts shrink to what the pool can supply."""
        slack = int(self.generation["candidate_slack"])
        intent = dict(intent)

        if intent["workout_type"] == "cardio":
            allowed = self._pick_exercises(ctx, ["cardio"], 1 + slack, None, set(), intent.get("target_exercise"))
            if not allowed:
                raise NoCandidatesAvailable("exercise", "body parts: cardio")
            self._drop_unavailable_target(intent, allowed)
            return intent, allowed

        compound = self._pick_exercises(
            ctx,
            intent["body_parts"],
            intent["compound_count"] + slack,
            True,
            set(),
            priority_name=intent.get("target_exercise"),
        )
        accessory = self._pick_exercises(
            ctx,
            intent["body_parts"],
            intent["accessory_count"] + slack,
            False,
            {e["id"] for e in compound},
        )
        if not compound and not accessory:
            raise NoCandidatesAvailable("exercise", f"body parts: {', '.join(intent['body_parts'])}")
        self._drop_unavailable_target(intent, compound)

        if len(compound) < intent["compound_count"] or len(accessory) < intent["accessory_count"]:
            intent["compound_count"] = min(intent["compound_count"], len(compound))
            intent["accessory_count"] = min(intent["accessory_count"], len(accessory))
            print(
                f"  ⚠ Limited exercise pool: planning {intent['compound_count']} compound + "
                f"{intent['accessory_count']} accessory exercises."
            )
        return intent, compound + accessory

    def _drop_unavailable_target(self, intent, allowed):
        target = intent.get("target_exercise")
        if target and not any(canonical_key(e["name"]) == canonical_key(target) for e in allowed):
            print(f"  ⚠ {target} is not among today's candidates; planning without it.")
            intent["target_exercise"] = None

    def _workout_targets(self, ctx, intent, allowed):
        if intent["workout_type"] == "cardio":
            return {e["name"]: compute_cardio_target(ctx["recent_workouts"], e["name"], ctx["goal"]) for e in allowed}

        targets = compute_progression_targets(ctx["recent_workouts"], allowed, intent["rep_ranges"])
        if intent.get("deload"):
            targets = {name: self._deload(target) for name, target in targets.items()}
        return targets

    def _generate_workout(self, intent, allowed, targets):
        loop = GenerationLoop(
            "workout",
            lambda errors: self.generator.generate_workout(intent, allowed, targets, errors),
            lambda blueprint: validate_workout_blueprint(blueprint, intent, targets, allowed, self.validation_rules),
            max_attempts=int(self.generation["max_workout_attempts"]),
        )
        blueprint = loop.run()
        print(f"  {loop.result['summary']}")
        return blueprint, loop.result

    # -------------------------------------------------------------------
    # Meal side
    # -------------------------------------------------------------------

    def _generate_meals(self, ctx, nutrition_intent):
        slots = list(self.generation["meal_slots"])
        allowed = self._pick_meals(ctx, slots, int(self.generation["meal_candidate_count"]))
        loop = GenerationLoop(
            "meal plan",
            lambda errors: self.generator.generate_meals(nutrition_intent, allowed, slots, errors),
            lambda plan: validate_meal_plan(plan, nutrition_intent, allowed, self.validation_rules),
            max_attempts=int(self.generation["max_meal_attempts"]),
        )
        plan = loop.run()
        print(f"  {loop.result['summary']}")
        return plan, allowed, loop.result

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------

    def generate_daily_plan(self, user_id, on_date):
        """
        Generate, validate and persist the workout and meals for one date.

        Returns:
            dict with keys: session, workout_intent, nutrition_intent, targets,
            fatigue, workout_validation, meal_validation

        Raises:
            DuplicateSession, NoActiveGoal, NoCandidatesAvailable,
            GenerationExhausted
        """
        on_date = _as_date(on_date)
        if self.store.get_session_by_date(user_id, on_date.isoformat()):
            raise DuplicateSession(user_id, on_date.isoformat())

        ctx = build_generation_context(self.store, user_id, on_date, self.config)
        user = ctx["user"]
        fatigue = self._detect_fatigue(ctx["recent_workouts"], on_date)
        workout_intent, nutrition_intent = compile_intents(
            ctx["goal"],
            ctx["recent_workouts"],
            on_date,
            profile=self._profile(user),
            split_type=user.get("split_type"),
            weekly_sessions=self._weekly_sessions(user),
            fatigue=fatigue,
        )
        if fatigue["should_deload"]:
            print(
                f"  Deload: failed reps {fatigue['failed_reps_ratio']:.0%}, "
                f"high RPE {fatigue['high_rpe_ratio']:.0%}."
            )

        workout_intent, allowed_exercises = self._workout_candidates(ctx, workout_intent)
        targets = self._workout_targets(ctx, workout_intent, allowed_exercises)
        blueprint, workout_validation = self._generate_workout(workout_intent, allowed_exercises, targets)
        meal_plan, allowed_meals, meal_validation = self._generate_meals(ctx, nutrition_intent)

        workout_explanation = self.generator.explain_workout(workout_intent, blueprint)
        meal_explanation = self.generator.explain_meals(nutrition_intent, meal_plan)

        exercises_by_name = _by_name(allowed_exercises)
        meals_by_name = _by_name(allowed_meals)
        with self.store.transaction():
            session_id = self.store.persist_session(
                user_id,
                on_date.isoformat(),
                workout_intent["intensity"],
                workout_intent["body_parts"],
                title=blueprint.get("title") or None,
                day_label=workout_intent.get("split_day_name"),
                workout_type=workout_intent["workout_type"],
                calorie_target=nutrition_intent["calorie_target"],
                protein_min=nutrition_intent["protein_min"],
                workout_explanation=workout_explanation,
                meal_explanation=meal_explanation,
            )
            for order, entry in enumerate(blueprint["exercises"]):
                exercise = exercises_by_name[canonical_key(entry["exercise"])]
                for number, planned in enumerate(entry["sets"], start=1):
                    weight, reps, distance = _planned_values(planned)
                    self.store.persist_exercise_set(
                        session_id,
                        exercise["id"],
                        number,
                        weight,
                        reps,
                        planned_distance=distance,
                        exercise_order=order,
                        notes=entry.get("notes") or None,
                    )
            for index, meal in enumerate(meal_plan["meals"]):
                reference = meals_by_name[canonical_key(meal["name"])]
                protein = reference.get("protein")
                if protein is None:
                    protein = meal.get("protein")
                self.store.persist_daily_meal(
                    session_id,
                    reference["id"],
                    meal.get("meal_type") or None,
                    index,
                    reference["calories"],
                    protein=protein,
                    ingredients=meal.get("ingredients"),
                    instructions=meal.get("instructions"),
                )

        print(f"✓ Plan saved for {on_date.isoformat()} (session {session_id})")
        return {
            "session": self.store.get_session(session_id),
            "workout_intent": workout_intent,
            "nutrition_intent": nutrition_intent,
            "targets": targets,
            "fatigue": fatigue,
            "workout_validation": workout_validation,
            "meal_validation": meal_validation,
        }

    def regenerate_single_exercise(self, session_id, exercise_set_id):
        """
        Replace one exercise (all of its sets) in an existing session.

        Returns the new exercise id. Raises ImmutableItem when any set of the
        exercise is already completed.
        """
        entry = self.store.get_exercise_set(exercise_set_id)
        if entry is None or entry["session_id"] != session_id:
            raise ValueError(f"Exercise set {exercise_set_id} not found in session {session_id}")

        sets = self.store.get_sets_for_exercise(session_id, entry["exercise_id"])
        if any(s["completed"] for s in sets):
            raise ImmutableItem("That exercise already has completed sets and cannot be replaced.")

        session = self.store.get_session(session_id)
        old = self.store.get_exercise(entry["exercise_id"])
        ctx = build_generation_context(self.store, session["user_id"], session["date"], self.config)
        fatigue = self._detect_fatigue(ctx["recent_workouts"], session["date"])
        intent = compile_workout_intent(ctx["goal"], ctx["recent_workouts"], session["date"], fatigue=fatigue)

        session_ids = {e["exercise_id"] for e in session["exercises"]}
        existing_names = [e["name"] for e in session["exercises"] if e["exercise_id"] != old["id"]]
        count = 1 + int(self.generation["candidate_slack"]) * 2
        allowed = self._pick_exercises(ctx, [old["body_part"]], count, old["is_compound"], session_ids)
        if not allowed:
            raise NoCandidatesAvailable("exercise", f"replacements for {old['name']}")

        category = "compound" if old["is_compound"] else "accessory"
        rep_range = intent["rep_ranges"].get(category)
        if session["workout_type"] == "cardio":
            targets = {e["name"]: compute_cardio_target(ctx["recent_workouts"], e["name"], ctx["goal"]) for e in allowed}
        else:
            targets = compute_progression_targets(ctx["recent_workouts"], allowed, intent["rep_ranges"])
            if fatigue["should_deload"]:
                targets = {name: self._deload(t) for name, t in targets.items()}
        allowed_by_name = _by_name(allowed)
        targets_by_key = {canonical_key(name): t for name, t in targets.items()}

        def _validate(candidate):
            target = targets_by_key.get(canonical_key(candidate["exercise"]))
            return validate_exercise_swap(
                candidate, len(sets), target, allowed, existing_names, rep_range, self.validation_rules
            )

        loop = GenerationLoop(
            "exercise swap",
            lambda errors: self.generator.generate_exercise_swap(
                old["name"], allowed, len(sets), targets, existing_names, errors
            ),
            _validate,
            max_attempts=int(self.generation["max_workout_attempts"]),
        )
        replacement = loop.run()
        new_exercise = allowed_by_name[canonical_key(replacement["exercise"])]

        with self.store.transaction():
            self.store.delete_exercise_sets([s["id"] for s in sets])
            for number, planned in enumerate(replacement["sets"], start=1):
                weight, reps, distance = _planned_values(planned)
                self.store.persist_exercise_set(
                    session_id,
                    new_exercise["id"],
                    number,
                    weight,
                    reps,
                    planned_distance=distance,
                    exercise_order=sets[0]["exercise_order"],
                    notes=replacement.get("notes") or None,
                )

        print(f"✓ Replaced {old['name']} with {new_exercise['name']}")
        return new_exercise["id"]

    def regenerate_single_meal(self, daily_meal_id):
        """
        Replace one planned meal, keeping the day's totals within tolerance.

        Returns the new meal id. Raises ImmutableItem for a completed meal.
        """
        daily_meal = self.store.get_daily_meal(daily_meal_id)
        if daily_meal is None:
            raise ValueError(f"Daily meal {daily_meal_id} not found")
        if daily_meal["completed"]:
            raise ImmutableItem("That meal is already completed and cannot be replaced.")

        session = self.store.get_session(daily_meal["session_id"])
        ctx = build_generation_context(self.store, session["user_id"], session["date"], self.config)
        if session.get("calorie_target") and session.get("protein_min") is not None:
            nutrition_intent = {
                "calorie_target": session["calorie_target"],
                "protein_min": session["protein_min"],
                "carb_bias": "moderate",
            }
        else:
            profile = self._profile(ctx["user"])
            nutrition_intent = compute_nutrition_intent(ctx["goal"], profile["weight_kg"], profile["height_cm"])

        others = [m for m in session["meals"] if m["id"] != daily_meal_id]
        other_calories = sum(float(m["calories"] or 0) for m in others)
        other_protein = sum(float(m["protein"] or 0) for m in others)
        calories_remaining = nutrition_intent["calorie_target"] - other_calories
        protein_remaining = nutrition_intent["protein_min"] - other_protein
        tolerance = float(self.validation_rules["calorie_error_tolerance"])

        exclude = {daily_meal["meal_id"]} | {m["meal_id"] for m in others}
        pool = [
            m for m in filter_candidates(ctx["meals"], exclude_ids=exclude, blocked_ids=ctx["blocked_meal_ids"])
            if abs(calories_remaining - float(m["calories"])) <= tolerance
        ]
        with_protein = [m for m in pool if float(m.get("protein") or 0) >= protein_remaining]
        pool = with_protein or pool
        if not pool:
            raise NoCandidatesAvailable("meal", "no replacement keeps the day within its calorie target")

        meal_type = daily_meal.get("meal_type")
        count = int(self.generation["meal_candidate_count"])
        allowed = self._pick_meals(ctx, [meal_type] if meal_type else [], count, pool=pool)

        day_meals = [
            {"name": m["meal_name"], "calories": m["calories"], "protein": m["protein"]}
            for m in others
        ]
        day_allowed = allowed + [self.store.get_meal(m["meal_id"]) for m in others]

        def _validate(candidate):
            plan = {"meals": day_meals + [candidate]}
            return validate_meal_plan(plan, nutrition_intent, day_allowed, self.validation_rules)

        loop = GenerationLoop(
            "meal swap",
            lambda errors: self.generator.generate_meal_swap(
                meal_type, allowed, calories_remaining, protein_remaining, errors
            ),
            _validate,
            max_attempts=int(self.generation["max_meal_attempts"]),
        )
        replacement = loop.run()
        new_meal = _by_name(allowed)[canonical_key(replacement["name"])]

        protein = new_meal.get("protein")
        if protein is None:
            protein = replacement.get("protein")
        with self.store.transaction():
            updated = self.store.replace_daily_meal(
                daily_meal_id,
                new_meal["id"],
                new_meal["calories"],
                protein=protein,
                ingredients=replacement.get("ingredients"),
                instructions=replacement.get("instructions"),
            )
            if not updated:
                raise ImmutableItem("That meal was completed while a replacement was generated.")

        print(f"✓ Replaced meal with {new_meal['name']}")
        return new_meal["id"]

    def build_weekly_plan(self, user_id):
        """
        WeeklySession layout for a user.

        Uses the user's split template when set; otherwise derives priorities
        from the active goal's body parts (the first part twice a week).
        """
        user = self.store.get_user(user_id)
        if user is None:
            raise ValueError(f"User {user_id} not found")
        distribution = self.schedule.get("intensity_distribution")

        if user.get("split_type"):
            return build_weekly_sessions(user["split_type"], distribution, user.get("days_per_week"))

        goal = self.store.get_active_goal(user_id)
        days_per_week = int(user.get("days_per_week") or 3)
        if goal is None:
            raise NoActiveGoal(user_id)

        intent = compile_workout_intent(goal, [], date.today())
        frequency = {}
        for index, part in enumerate(intent["body_parts"]):
            frequency[part] = 2 if index == 0 else 1
        return build_sessions_from_priorities(frequency, days_per_week, distribution=distribution)
