import json
import os
import random
import tempfile
import unittest

from fitcoach.config import default_config
from fitcoach.daily_planner import DailyPlanner
from fitcoach.errors import DuplicateSession, GenerationExhausted, ImmutableItem, NoActiveGoal
from fitcoach.plan_generator import PlanGenerator
from fitcoach.workout_db import WorkoutDB


PLAN_DATE = "2026-03-18"


def sets(count, weight, reps):
    return [{"weight": weight, "reps": reps} for _ in range(count)]


VALID_WORKOUT = json.dumps({
    "title": "Bench Focus",
    "exercises": [
        {"exercise": "Bench Press", "notes": "Pause on the chest", "sets": sets(4, 50, 6)},
        {"exercise": "Incline Dumbbell Press", "notes": "", "sets": sets(4, 50, 6)},
        {"exercise": "Chest Cable Fly", "notes": "", "sets": sets(2, 50, 10)},
        {"exercise": "Triceps Pushdown", "notes": "", "sets": sets(2, 50, 10)},
    ],
})

OFF_MENU_WORKOUT = json.dumps({
    "title": "Bench Focus",
    "exercises": [
        {"exercise": "Bench Press", "sets": sets(4, 50, 6)},
        {"exercise": "Incline Dumbbell Press", "sets": sets(4, 50, 6)},
        {"exercise": "Chest Cable Fly", "sets": sets(2, 50, 10)},
        {"exercise": "Skull Crusher", "sets": sets(2, 50, 10)},
    ],
})

VALID_MEALS = json.dumps({
    "title": "Training Day",
    "meals": [
        {"name": "Overnight Oats", "meal_type": "breakfast", "calories": 650, "protein": 40, "ingredients": ["oats"]},
        {"name": "Chicken Rice Bowl", "meal_type": "lunch", "calories": 800, "protein": 50},
        {"name": "Salmon with Sweet Potato", "meal_type": "dinner", "calories": 900, "protein": 50},
        {"name": "Protein Shake", "meal_type": "snack", "calories": 400, "protein": 35},
    ],
})

PEC_DECK_SWAP = json.dumps({"exercise": "Pec Deck", "notes": "Squeeze", "sets": sets(2, 50, 10)})

YOGURT_SWAP = json.dumps({
    "name": "Greek Yogurt Bowl",
    "meal_type": "snack",
    "calories": 420,
    "protein": 30,
    "ingredients": ["yogurt", "berries"],
})


class ScriptedModel:
    """Routes prompts by kind and replays scripted responses (the last one repeats)."""

    def __init__(self, workout=None, meals=None, exercise_swap=None, meal_swap=None):
        self.responses = {
            "workout": list(workout or [VALID_WORKOUT]),
            "meals": list(meals or [VALID_MEALS]),
            "exercise_swap": list(exercise_swap or [PEC_DECK_SWAP]),
            "meal_swap": list(meal_swap or [YOGURT_SWAP]),
        }
        self.prompts = {kind: [] for kind in self.responses}
        self.prompts["explain"] = []

    def __call__(self, prompt):
        if prompt.startswith("In 2-3 sentences"):
            self.prompts["explain"].append(prompt)
            return "Heavy pressing first, then volume for the supporting muscles."
        if prompt.startswith("Replace one exercise"):
            kind = "exercise_swap"
        elif prompt.startswith("Replace one"):
            kind = "meal_swap"
        elif "ALLOWED MEALS" in prompt:
            kind = "meals"
        else:
            kind = "workout"
        self.prompts[kind].append(prompt)
        queue = self.responses[kind]
        return queue.pop(0) if len(queue) > 1 else queue[0]


class DailyPlannerTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db = WorkoutDB(os.path.join(self.tmp.name, "coach.db"))
        self.db.init_schema()
        self.user_id = self.db.upsert_user("jordan", weight_kg=70, height_cm=175)
        self.db.upsert_exercise("Bench Press", "chest", is_compound=True, equipment="barbell")
        self.db.upsert_exercise("Incline Dumbbell Press", "chest", is_compound=True, equipment="dumbbell")
        self.db.upsert_exercise("Chest Cable Fly", "chest")
        self.db.upsert_exercise("Triceps Pushdown", "triceps")
        self.db.upsert_exercise("Pec Deck", "chest")
        self.db.upsert_exercise("Squat", "quads", is_compound=True)
        self.db.upsert_meal("Overnight Oats", 650, 40, ["breakfast"])
        self.db.upsert_meal("Chicken Rice Bowl", 800, 50, ["lunch"])
        self.db.upsert_meal("Salmon with Sweet Potato", 900, 50, ["dinner"])
        self.db.upsert_meal("Protein Shake", 400, 35, ["snack"])
        self.db.upsert_meal("Greek Yogurt Bowl", 420, 30, ["snack"])
        with self.db.transaction():
            self.db.create_goal(self.user_id, "strength", "increase", 225, "lbs", target_exercise="bench press")

    def tearDown(self):
        self.db.close()
        self.tmp.cleanup()

    def _planner(self, model):
        return DailyPlanner(self.db, PlanGenerator(model, default_config()), default_config(), random.Random(0))

    def _plan(self, model=None):
        model = model or ScriptedModel()
        return self._planner(model).generate_daily_plan(self.user_id, PLAN_DATE), model

    def test_generates_and_persists_a_valid_day(self):
        result, model = self._plan()
        session = result["session"]

        self.assertEqual(session["date"], PLAN_DATE)
        self.assertEqual(session["intensity"], "strengthen")
        self.assertEqual(session["calorie_target"], 2750)
        self.assertEqual(session["protein_min"], 140)
        self.assertEqual(
            [e["name"] for e in session["exercises"]],
            ["Bench Press", "Incline Dumbbell Press", "Chest Cable Fly", "Triceps Pushdown"],
        )
        bench_sets = session["exercises"][0]["sets"]
        self.assertEqual([s["set_number"] for s in bench_sets], [1, 2, 3, 4])
        self.assertEqual({(s["planned_weight"], s["planned_reps"]) for s in bench_sets}, {(50.0, 6)})
        self.assertEqual(sum(m["calories"] for m in session["meals"]), 2750)
        self.assertEqual(session["meals"][0]["ingredients"], ["oats"])
        self.assertTrue(session["workout_explanation"].startswith("Heavy pressing"))

        self.assertTrue(result["workout_validation"]["valid"])
        self.assertTrue(result["meal_validation"]["valid"])
        self.assertEqual(result["targets"]["Bench Press"], {"next_weight": 50.0, "target_reps": 6})
        self.assertNotIn("Squat", model.prompts["workout"][0])
        self.assertIn("FIRST exercise must be bench press", model.prompts["workout"][0])

    def test_fractional_rep_strings_are_saved_as_integers(self):
        workout = json.loads(VALID_WORKOUT)
        for planned in workout["exercises"][0]["sets"]:
            planned["reps"] = "6.0"
        result, _ = self._plan(ScriptedModel(workout=[json.dumps(workout)]))

        bench_sets = result["session"]["exercises"][0]["sets"]
        self.assertEqual([s["planned_reps"] for s in bench_sets], [6, 6, 6, 6])
        self.assertTrue(all(isinstance(s["planned_reps"], int) for s in bench_sets))

    def test_lift_used_earlier_this_week_is_left_out(self):
        bench = self.db.find_exercise("Bench Press")
        with self.db.transaction():
            monday = self.db.persist_session(self.user_id, "2026-03-16", "strengthen", ["chest"])
            self.db.persist_exercise_set(monday, bench["id"], 1, 50.0, 6, exercise_order=0)

        model = ScriptedModel(workout=[VALID_WORKOUT])
        with self.assertRaises(GenerationExhausted):
            self._plan(model)

        prompt = model.prompts["workout"][0]
        self.assertNotIn("- Bench Press (", prompt)
        self.assertNotIn("FIRST exercise", prompt)
        self.assertIn("- Incline Dumbbell Press (", prompt)
        self.assertIsNone(self.db.get_session_by_date(self.user_id, PLAN_DATE))

    def test_malformed_response_is_retried_with_feedback(self):
        model = ScriptedModel(workout=["Sure! Here is a great workout for you.", VALID_WORKOUT])
        result, _ = self._plan(model)

        self.assertEqual(len(model.prompts["workout"]), 2)
        self.assertIn("previous answer was rejected", model.prompts["workout"][1])
        self.assertIn("did not contain a JSON object", model.prompts["workout"][1])
        self.assertEqual(len(result["session"]["exercises"]), 4)

    def test_exhausted_generation_persists_nothing(self):
        model = ScriptedModel(workout=[OFF_MENU_WORKOUT])
        with self.assertRaises(GenerationExhausted) as ctx:
            self._plan(model)

        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIn("Skull Crusher", ctx.exception.user_message())
        self.assertEqual(model.prompts["meals"], [])
        self.assertIsNone(self.db.get_session_by_date(self.user_id, PLAN_DATE))

    def test_second_plan_for_same_date(self):
        self._plan()
        with self.assertRaises(DuplicateSession):
            self._plan()

    def test_missing_goal(self):
        other = self.db.upsert_user("riley")
        self.db.conn.commit()
        with self.assertRaises(NoActiveGoal):
            self._planner(ScriptedModel()).generate_daily_plan(other, PLAN_DATE)

    def test_replace_exercise(self):
        result, _ = self._plan()
        session = result["session"]
        fly = next(e for e in session["exercises"] if e["name"] == "Chest Cable Fly")

        new_id = self._planner(ScriptedModel()).regenerate_single_exercise(session["id"], fly["sets"][0]["id"])

        updated = self.db.get_session(session["id"])
        names = [e["name"] for e in updated["exercises"]]
        self.assertEqual(names, ["Bench Press", "Incline Dumbbell Press", "Pec Deck", "Triceps Pushdown"])
        self.assertEqual(updated["exercises"][2]["exercise_id"], new_id)
        self.assertEqual(len(updated["exercises"][2]["sets"]), 2)

    def test_exercise_with_logged_sets_is_immutable(self):
        result, _ = self._plan()
        session = result["session"]
        fly = next(e for e in session["exercises"] if e["name"] == "Chest Cable Fly")
        with self.db.transaction():
            self.db.log_set(fly["sets"][0]["id"], actual_weight=50, actual_reps=10)

        with self.assertRaises(ImmutableItem):
            self._planner(ScriptedModel()).regenerate_single_exercise(session["id"], fly["sets"][1]["id"])

    def test_replace_meal_keeps_day_on_target(self):
        result, _ = self._plan()
        shake = next(m for m in result["session"]["meals"] if m["meal_name"] == "Protein Shake")

        model = ScriptedModel()
        new_id = self._planner(model).regenerate_single_meal(shake["id"])

        replaced = self.db.get_daily_meal(shake["id"])
        self.assertEqual(replaced["meal_id"], new_id)
        self.assertEqual(replaced["calories"], 420)
        self.assertEqual(replaced["ingredients"], ["yogurt", "berries"])
        self.assertIn("Greek Yogurt Bowl", model.prompts["meal_swap"][0])
        self.assertNotIn("Overnight Oats", model.prompts["meal_swap"][0])

    def test_completed_meal_is_immutable(self):
        result, _ = self._plan()
        meal_id = result["session"]["meals"][0]["id"]
        with self.db.transaction():
            self.db.complete_meal(meal_id)

        with self.assertRaises(ImmutableItem):
            self._planner(ScriptedModel()).regenerate_single_meal(meal_id)

    def test_weekly_plan(self):
        planner = self._planner(ScriptedModel())
        sessions = planner.build_weekly_plan(self.user_id)
        self.assertEqual(len(sessions), 3)
        self.assertEqual(sessions[0]["name"], "Chest")
        self.assertEqual(sessions[-1]["name"], "Secondary Support")

        self.db.upsert_user("jordan", split_type="PPL", days_per_week=3)
        self.db.conn.commit()
        sessions = planner.build_weekly_plan(self.user_id)
        self.assertEqual([s["name"] for s in sessions], ["Push", "Pull", "Legs"])


if __name__ == "__main__":
    unittest.main()
