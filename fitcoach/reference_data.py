"""
Load exercise and meal reference data from YAML into the store.
"""

import os

import yaml


DEFAULT_REFERENCE_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "data",
    "reference_data.yaml",
)


def load_reference_data(path=None):
    """
    Read the reference file.

    Returns:
        dict with keys: exercises, meals (lists of dicts)
    """
    path = path or DEFAULT_REFERENCE_PATH
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping with 'exercises' and 'meals'")
    return {
        "exercises": list(data.get("exercises") or []),
        "meals": list(data.get("meals") or []),
    }


def seed_reference_data(store, data):
    """Upsert every exercise and meal; returns (exercise_count, meal_count)."""
    exercises = 0
    meals = 0
    with store.transaction():
        for entry in data.get("exercises", []):
            if not entry.get("name") or not entry.get("body_part"):
                print(f"  ⚠ Skipping exercise without name/body_part: {entry}")
                continue
            store.upsert_exercise(
                entry["name"],
                entry["body_part"],
                is_compound=bool(entry.get("is_compound")),
                equipment=entry.get("equipment"),
            )
            exercises += 1

        for entry in data.get("meals", []):
            if not entry.get("name") or entry.get("calories") is None:
                print(f"  ⚠ Skipping meal without name/calories: {entry}")
                continue
            store.upsert_meal(
                entry["name"],
                entry["calories"],
                protein=entry.get("protein"),
                meal_types=entry.get("meal_types"),
            )
            meals += 1
    return exercises, meals
