import json
import unittest
from unittest.mock import MagicMock, patch

from fitcoach.config import default_config
from fitcoach.errors import GenerationParseFailure
from fitcoach.plan_generator import (
    ClaudeTextModel,
    PlanGenerator,
    describe_set,
    extract_json_object,
    parse_exercise_swap,
    parse_meal_plan,
    parse_workout_blueprint,
    strip_code_fences,
)


INTENT = {
    "body_parts": ["chest", "triceps"],
    "intensity": "strengthen",
    "compound_sets": 4,
    "accessory_sets": 2,
    "compound_count": 2,
    "accessory_count": 2,
    "rep_ranges": {"compound": "4-6", "accessory": "8-10"},
    "target_exercise": "bench press",
    "workout_type": "main",
}

ALLOWED = [
    {"id": 1, "name": "Bench Press", "body_part": "chest", "is_compound": True, "equipment": "barbell"},
    {"id": 3, "name": "Chest Cable Fly", "body_part": "chest", "is_compound": False},
]

TARGETS = {
    "Bench Press": {"next_weight": 52.5, "target_reps": 6},
    "Chest Cable Fly": {"next_weight": 50.0, "target_reps": 10},
}


class ParsingTests(unittest.TestCase):
    def test_strip_code_fences(self):
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_extract_json_ignores_surrounding_prose(self):
        data = extract_json_object('Here you go:\n{"title": "Push", "exercises": []}\nEnjoy!')
        self.assertEqual(data["title"], "Push")

    def test_parse_failure_does_not_echo_model_text(self):
        with self.assertRaises(GenerationParseFailure) as ctx:
            extract_json_object("SECRET-PAYLOAD {not json at all}")
        self.assertNotIn("SECRET-PAYLOAD", str(ctx.exception))
        with self.assertRaises(GenerationParseFailure):
            extract_json_object("no braces here")

    def test_workout_blueprint_shape(self):
        text = json.dumps({
            "title": " Push Day ",
            "exercises": [
                {"exercise": "Bench Press", "notes": "Brace", "sets": [{"weight": 52.5, "reps": 6}]},
                {"name": "Running", "sets": [{"weight": 0, "reps": 1, "distance": 5.0}]},
            ],
        })
        blueprint = parse_workout_blueprint(text)
        self.assertEqual(blueprint["title"], "Push Day")
        self.assertEqual(blueprint["exercises"][0]["sets"], [{"weight": 52.5, "reps": 6}])
        self.assertEqual(blueprint["exercises"][1]["exercise"], "Running")
        self.assertEqual(blueprint["exercises"][1]["sets"][0]["distance"], 5.0)

    def test_workout_blueprint_structure_errors(self):
        with self.assertRaises(GenerationParseFailure):
            parse_workout_blueprint('{"title": "x"}')
        with self.assertRaises(GenerationParseFailure):
            parse_workout_blueprint('{"exercises": [{"exercise": "Bench Press", "sets": "4x6"}]}')

    def test_meal_plan_normalizes_fields(self):
        plan = parse_meal_plan(json.dumps({
            "meals": [{"name": "Oats", "mealType": "Breakfast", "calories": 450, "protein": 30, "ingredients": "oats"}]
        }))
        meal = plan["meals"][0]
        self.assertEqual(meal["meal_type"], "breakfast")
        self.assertEqual(meal["ingredients"], ["oats"])
        self.assertEqual(meal["instructions"], [])

    def test_exercise_swap_accepts_wrapped_single_entry(self):
        swap = parse_exercise_swap('{"exercises": [{"exercise": "Pec Deck", "sets": [{"weight": 50, "reps": 10}]}]}')
        self.assertEqual(swap["exercise"], "Pec Deck")
        with self.assertRaises(GenerationParseFailure):
            parse_exercise_swap('{"exercises": [{"exercise": "A", "sets": []}, {"exercise": "B", "sets": []}]}')

    def test_describe_set(self):
        self.assertEqual(describe_set({"weight": 52.5, "reps": 6}), "52.5 x 6")
        self.assertEqual(describe_set({"weight": 0, "reps": 1, "distance": 5.0}), "5.0 distance")


class PlanGeneratorTests(unittest.TestCase):
    def test_workout_prompt_carries_exact_constraints(self):
        generator = PlanGenerator(lambda prompt: "", default_config())
        prompt = generator.build_workout_prompt(INTENT, ALLOWED, TARGETS, ["Exercise 'Skull Crusher' is not allowed."])
        self.assertIn("- Bench Press (chest, compound, barbell)", prompt)
        self.assertIn("FIRST exercise must be bench press", prompt)
        self.assertIn("Bench Press: weight 52.5 x 6 reps", prompt)
        self.assertIn("exactly 4 sets", prompt)
        self.assertIn("Skull Crusher", prompt)

    def test_meal_prompt_uses_warning_tolerance(self):
        generator = PlanGenerator(lambda prompt: "", default_config())
        meals = [{"name": "Oats", "calories": 450, "protein": 30, "meal_types": ["breakfast"]}]
        prompt = generator.build_meal_prompt(
            {"calorie_target": 2000, "protein_min": 150, "carb_bias": "low"}, meals, ["breakfast", "lunch"]
        )
        self.assertIn("within 50 of 2000 kcal", prompt)
        self.assertIn("- Oats (450 kcal, 30g protein; breakfast)", prompt)

    def test_generate_workout_parses_model_output(self):
        response = json.dumps({"title": "Push", "exercises": [{"exercise": "Bench Press", "sets": [{"weight": 52.5, "reps": 6}]}]})
        prompts = []

        def model(prompt):
            prompts.append(prompt)
            return "```json\n" + response + "\n```"

        blueprint = PlanGenerator(model, default_config()).generate_workout(INTENT, ALLOWED, TARGETS)
        self.assertEqual(blueprint["exercises"][0]["exercise"], "Bench Press")
        self.assertEqual(len(prompts), 1)

    def test_explanation_falls_back_when_model_fails(self):
        def broken(prompt):
            raise RuntimeError("network down")

        text = PlanGenerator(broken).explain_meals(
            {"calorie_target": 2000, "protein_min": 150, "carb_bias": "low"}, {"meals": [{"name": "Oats"}]}
        )
        self.assertIn("2000 kcal", text)


class ClaudeTextModelTests(unittest.TestCase):
    @patch("fitcoach.plan_generator.anthropic.Anthropic")
    def test_calls_messages_api_with_config(self, anthropic_cls):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(content=[MagicMock(text='{"ok": true}')])
        anthropic_cls.return_value = client

        model = ClaudeTextModel("test-key", default_config())
        self.assertEqual(model("hello"), '{"ok": true}')

        anthropic_cls.assert_called_once_with(api_key="test-key", timeout=120)
        kwargs = client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-sonnet-4-5")
        self.assertEqual(kwargs["max_tokens"], 2048)
        self.assertEqual(kwargs["temperature"], 0.4)
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "hello"}])

    @patch("fitcoach.plan_generator.anthropic.Anthropic")
    def test_empty_content_returns_empty_string(self, anthropic_cls):
        anthropic_cls.return_value.messages.create.return_value = MagicMock(content=[])
        self.assertEqual(ClaudeTextModel("k", default_config(), model="other-model")("hi"), "")


if __name__ == "__main__":
    unittest.main()
