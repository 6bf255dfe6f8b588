"""
Constrained plan generation using the Claude API.

The text model only chooses among allowed items and writes labels; every
quantity in the prompt is precomputed. Responses are parsed into plain dicts
and handed to the validator.
"""

import json
import re

import anthropic

from fitcoach.errors import GenerationParseFailure
from fitcoach.progression_rules import format_load, format_targets_for_prompt


WORKOUT_SCHEMA = (
    '{"title": "<short session title>", "exercises": [{"exercise": "<allowed name>", '
    '"notes": "<one short cue>", "sets": [{"weight": <number>, "reps": <integer>}]}]}'
)
CARDIO_SCHEMA = (
    '{"title": "<short session title>", "exercises": [{"exercise": "<allowed name>", '
    '"notes": "<pacing cue>", "sets": [{"weight": 0, "reps": 1, "distance": <number>}]}]}'
)
MEAL_SCHEMA = (
    '{"title": "<short day title>", "meals": [{"name": "<allowed meal>", "meal_type": "<slot>", '
    '"calories": <number>, "protein": <number>, "ingredients": ["..."], "instructions": ["..."]}]}'
)


class ClaudeTextModel:
    """Callable prompt -> text wrapper around the Anthropic messages API."""

    def __init__(self, api_key, config, model=None, max_tokens=None, timeout=None):
        """
        Args:
            api_key: Anthropic API key
            config: full configuration dict (uses the ``claude`` section)
            model: overrides config['claude']['model']
            max_tokens: overrides config['claude']['max_tokens']
            timeout: client timeout in seconds
        """
        claude = config.get("claude", {})
        self.client = anthropic.Anthropic(
            api_key=api_key,
            timeout=timeout or claude.get("timeout", 120),
        )
        self.model = model or claude["model"]
        self.max_tokens = max_tokens or claude["max_tokens"]
        self.temperature = claude.get("temperature")

    def __call__(self, prompt):
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        message = self.client.messages.create(**kwargs)
        if not message.content:
            return ""
        return message.content[0].text or ""


def strip_code_fences(text):
    text = (text or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
    return text.strip()


def extract_json_object(text):
    """
    Parse the first JSON object out of a model response.

    Raises GenerationParseFailure without echoing the response.
    """
    text = strip_code_fences(text)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise GenerationParseFailure("Model response did not contain a JSON object.")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise GenerationParseFailure(f"Model response was not valid JSON (line {exc.lineno}, column {exc.colno}).")
    if not isinstance(data, dict):
        raise GenerationParseFailure("Model response JSON was not an object.")
    return data


def _parse_exercise_entry(entry, index):
    if not isinstance(entry, dict):
        raise GenerationParseFailure(f"Exercise #{index} is not an object.")
    name = entry.get("exercise") or entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise GenerationParseFailure(f"Exercise #{index} has no name.")
    sets = entry.get("sets")
    if not isinstance(sets, list) or not all(isinstance(s, dict) for s in sets):
        raise GenerationParseFailure(f"Exercise #{index} has no list of sets.")

    parsed_sets = []
    for s in sets:
        parsed = {"weight": s.get("weight"), "reps": s.get("reps")}
        if s.get("distance") is not None:
            parsed["distance"] = s.get("distance")
        parsed_sets.append(parsed)

    return {
        "exercise": name.strip(),
        "notes": str(entry.get("notes") or "").strip(),
        "sets": parsed_sets,
    }


def _parse_meal_entry(entry, index):
    if not isinstance(entry, dict):
        raise GenerationParseFailure(f"Meal #{index} is not an object.")
    name = entry.get("name") or entry.get("meal")
    if not isinstance(name, str) or not name.strip():
        raise GenerationParseFailure(f"Meal #{index} has no name.")

    def _text_list(value):
        if isinstance(value, str):
            return [value.strip()] if value.strip() else []
        if isinstance(value, list):
            return [str(v).strip() for v in value if str(v).strip()]
        return []

    return {
        "name": name.strip(),
        "meal_type": str(entry.get("meal_type") or entry.get("mealType") or "").strip().lower(),
        "calories": entry.get("calories"),
        "protein": entry.get("protein"),
        "ingredients": _text_list(entry.get("ingredients")),
        "instructions": _text_list(entry.get("instructions")),
    }


def parse_workout_blueprint(text):
    data = extract_json_object(text)
    exercises = data.get("exercises")
    if not isinstance(exercises, list):
        raise GenerationParseFailure("Workout response has no 'exercises' list.")
    return {
        "title": str(data.get("title") or "").strip(),
        "exercises": [_parse_exercise_entry(e, i) for i, e in enumerate(exercises, start=1)],
    }


def parse_meal_plan(text):
    data = extract_json_object(text)
    meals = data.get("meals")
    if not isinstance(meals, list):
        raise GenerationParseFailure("Meal response has no 'meals' list.")
    return {
        "title": str(data.get("title") or "").strip(),
        "meals": [_parse_meal_entry(m, i) for i, m in enumerate(meals, start=1)],
    }


def parse_exercise_swap(text):
    data = extract_json_object(text)
    if isinstance(data.get("exercises"), list):
        if len(data["exercises"]) != 1:
            raise GenerationParseFailure("Swap response must contain exactly one exercise.")
        data = data["exercises"][0]
    return _parse_exercise_entry(data, 1)


def parse_meal_swap(text):
    data = extract_json_object(text)
    if isinstance(data.get("meals"), list):
        if len(data["meals"]) != 1:
            raise GenerationParseFailure("Swap response must contain exactly one meal.")
        data = data["meals"][0]
    return _parse_meal_entry(data, 1)


def _previous_errors_block(previous_errors):
    if not previous_errors:
        return ""
    lines = "\n".join(f"- {message}" for message in previous_errors[:10])
    return f"\nYour previous answer was rejected for these reasons. Fix all of them:\n{lines}\n"


class PlanGenerator:
    """Builds constrained prompts and turns model text into blueprints."""

    def __init__(self, text_model, config=None):
        """
        Args:
            text_model: any callable prompt -> text (ClaudeTextModel in production)
            config: full configuration dict
        """
        self.text_model = text_model
        self.config = config or {}

    # -------------------------------------------------------------------
    # Prompt assembly
    # -------------------------------------------------------------------

    @staticmethod
    def _format_exercise_list(allowed):
        lines = []
        for exercise in allowed:
            category = "compound" if exercise.get("is_compound") else "accessory"
            equipment = f", {exercise['equipment']}" if exercise.get("equipment") else ""
            lines.append(f"- {exercise['name']} ({exercise.get('body_part', '')}, {category}{equipment})")
        return "\n".join(lines)

    def build_workout_prompt(self, intent, allowed, targets, previous_errors=None):
        if intent.get("workout_type") == "cardio":
            return self._build_cardio_prompt(intent, allowed, targets, previous_errors)

        primary_rule = ""
        if intent.get("target_exercise"):
            primary_rule = f"- The FIRST exercise must be {intent['target_exercise']} (primary lift).\n"

        return f"""You are a strength coach choosing today's workout from a fixed menu.

Body parts: {', '.join(intent['body_parts'])}
Intensity: {intent['intensity']}

ALLOWED EXERCISES (use these names exactly; nothing else is permitted):
{self._format_exercise_list(allowed)}

EXACT REQUIREMENTS:
- Choose exactly {intent['compound_count']} compound and {intent['accessory_count']} accessory exercises ({intent['compound_count'] + intent['accessory_count']} total).
- Every compound exercise has exactly {intent['compound_sets']} sets; every accessory exercise has exactly {intent['accessory_sets']} sets.
{primary_rule}- Use these weights and reps for every set of the exercise. Do not change them:
{format_targets_for_prompt(targets)}
- Do not invent exercises, weights or reps. You only choose which allowed exercises to use, their order and a short note each.
{_previous_errors_block(previous_errors)}
Return ONLY JSON in this shape, no markdown:
{WORKOUT_SCHEMA}
"""

    def _build_cardio_prompt(self, intent, allowed, targets, previous_errors=None):
        return f"""You are an endurance coach writing today's single cardio session.

ALLOWED EXERCISES:
{self._format_exercise_list(allowed)}

EXACT REQUIREMENTS:
- Exactly 1 exercise: {intent.get('target_exercise') or 'one of the allowed exercises'}.
- Exactly 1 set with weight 0, reps 1 and the distance below:
{format_targets_for_prompt(targets)}
- Do not invent distances or exercises.
{_previous_errors_block(previous_errors)}
Return ONLY JSON in this shape, no markdown:
{CARDIO_SCHEMA}
"""

    def build_meal_prompt(self, nutrition_intent, allowed_meals, meal_slots, previous_errors=None):
        tolerance = self.config.get("validation", {}).get("calorie_warning_tolerance", 50)
        lines = []
        for meal in allowed_meals:
            protein = f", {meal['protein']:g}g protein" if meal.get("protein") is not None else ""
            types = "/".join(meal.get("meal_types") or []) or "any"
            lines.append(f"- {meal['name']} ({meal['calories']:g} kcal{protein}; {types})")

        return f"""You are a sports nutritionist choosing today's meals from a fixed menu.

ALLOWED MEALS (use these names, calories and protein exactly):
{chr(10).join(lines)}

EXACT REQUIREMENTS:
- Choose 3 to 5 meals covering these slots: {', '.join(meal_slots)}.
- Total calories within {tolerance} of {nutrition_intent['calorie_target']} kcal.
- Total protein at least {nutrition_intent['protein_min']} g.
- Carb bias: {nutrition_intent['carb_bias']}.
- Copy each meal's calories and protein from the list. You only choose meals, slots, ingredients and short instructions.
{_previous_errors_block(previous_errors)}
Return ONLY JSON in this shape, no markdown:
{MEAL_SCHEMA}
"""

    def build_exercise_swap_prompt(self, replaced_name, allowed, expected_sets, targets, existing_names, previous_errors=None):
        return f"""Replace one exercise in today's workout.

Replacing: {replaced_name}
Already in the session (do not repeat): {', '.join(existing_names) or 'none'}

ALLOWED REPLACEMENTS:
{self._format_exercise_list(allowed)}

EXACT REQUIREMENTS:
- Exactly 1 exercise with exactly {expected_sets} sets.
- Use these weights and reps for every set:
{format_targets_for_prompt(targets)}
{_previous_errors_block(previous_errors)}
Return ONLY JSON in this shape, no markdown:
{{"exercise": "<allowed name>", "notes": "<one short cue>", "sets": [{{"weight": <number>, "reps": <integer>}}]}}
"""

    def build_meal_swap_prompt(self, meal_type, allowed_meals, calories_remaining, protein_remaining, previous_errors=None):
        lines = []
        for meal in allowed_meals:
            protein = f", {meal['protein']:g}g protein" if meal.get("protein") is not None else ""
            lines.append(f"- {meal['name']} ({meal['calories']:g} kcal{protein})")
        return f"""Replace one {meal_type or 'meal'} in today's plan.

ALLOWED REPLACEMENTS:
{chr(10).join(lines)}

The rest of the day leaves room for about {calories_remaining:g} kcal and needs at least {max(protein_remaining, 0):g} g protein from this meal.
Copy the meal's calories and protein from the list exactly.
{_previous_errors_block(previous_errors)}
Return ONLY JSON in this shape, no markdown:
{{"name": "<allowed meal>", "meal_type": "{meal_type or ''}", "calories": <number>, "protein": <number>, "ingredients": ["..."], "instructions": ["..."]}}
"""

    # -------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------

    def generate_workout(self, intent, allowed, targets, previous_errors=None):
        text = self.text_model(self.build_workout_prompt(intent, allowed, targets, previous_errors))
        return parse_workout_blueprint(text)

    def generate_meals(self, nutrition_intent, allowed_meals, meal_slots, previous_errors=None):
        text = self.text_model(self.build_meal_prompt(nutrition_intent, allowed_meals, meal_slots, previous_errors))
        return parse_meal_plan(text)

    def generate_exercise_swap(self, replaced_name, allowed, expected_sets, targets, existing_names, previous_errors=None):
        prompt = self.build_exercise_swap_prompt(
            replaced_name, allowed, expected_sets, targets, existing_names, previous_errors
        )
        return parse_exercise_swap(self.text_model(prompt))

    def generate_meal_swap(self, meal_type, allowed_meals, calories_remaining, protein_remaining, previous_errors=None):
        prompt = self.build_meal_swap_prompt(
            meal_type, allowed_meals, calories_remaining, protein_remaining, previous_errors
        )
        return parse_meal_swap(self.text_model(prompt))

    # -------------------------------------------------------------------
    # Explanations
    # -------------------------------------------------------------------

    def _explain(self, prompt, fallback):
        try:
            text = strip_code_fences(self.text_model(prompt))
        except Exception as e:
            print(f"  Explanation unavailable ({type(e).__name__}), using summary.")
            return fallback
        return text or fallback

    def explain_workout(self, intent, blueprint):
        names = [e["exercise"] for e in blueprint.get("exercises", [])]
        fallback = (
            f"Today's {intent['intensity']} session trains {', '.join(intent['body_parts'])} "
            f"with {len(names)} exercise(s), following your recent performance."
        )
        prompt = (
            "In 2-3 sentences, explain to the athlete why today's workout fits their goal. "
            "Do not change any numbers.\n"
            f"Intensity: {intent['intensity']}\nBody parts: {', '.join(intent['body_parts'])}\n"
            f"Exercises: {', '.join(names)}"
        )
        return self._explain(prompt, fallback)

    def explain_meals(self, nutrition_intent, meal_plan):
        names = [m["name"] for m in meal_plan.get("meals", [])]
        fallback = (
            f"Today's meals target about {nutrition_intent['calorie_target']} kcal with at least "
            f"{nutrition_intent['protein_min']} g protein ({nutrition_intent['carb_bias']} carbs)."
        )
        prompt = (
            "In 2-3 sentences, explain how today's meals support the athlete's goal. "
            "Do not change any numbers.\n"
            f"Calories: {nutrition_intent['calorie_target']}\nProtein minimum: {nutrition_intent['protein_min']} g\n"
            f"Meals: {', '.join(names)}"
        )
        return self._explain(prompt, fallback)


def describe_set(entry):
    """One-line human rendering of a planned set."""
    if entry.get("distance") is not None:
        return f"{entry['distance']} distance"
    return f"{format_load(entry.get('weight'))} x {entry.get('reps')}"
