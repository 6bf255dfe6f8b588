"""
Built-in training split templates.

Each template is an ordered list of named days; ``days_per_week`` is how many
sessions the split fills in one week (PPL runs its three days twice).
"""


SPLIT_TEMPLATES = {
    "PPL": {
        "type": "PPL",
        "name": "Push/Pull/Legs",
        "days_per_week": 6,
        "days": [
            {"day": 1, "name": "Push", "body_parts": ["chest", "shoulders", "triceps"]},
            {"day": 2, "name": "Pull", "body_parts": ["back", "biceps"]},
            {"day": 3, "name": "Legs", "body_parts": ["legs", "glutes"]},
        ],
    },
    "UPPER_LOWER": {
        "type": "UPPER_LOWER",
        "name": "Upper/Lower",
        "days_per_week": 4,
        "days": [
            {"day": 1, "name": "Upper", "body_parts": ["chest", "back", "shoulders", "biceps", "triceps"]},
            {"day": 2, "name": "Lower", "body_parts": ["legs", "glutes"]},
        ],
    },
    "FULL_BODY": {
        "type": "FULL_BODY",
        "name": "Full Body",
        "days_per_week": 3,
        "days": [
            {"day": 1, "name": "Full Body", "body_parts": ["chest", "back", "legs", "shoulders"]},
        ],
    },
    "BRO_SPLIT": {
        "type": "BRO_SPLIT",
        "name": "Bro Split",
        "days_per_week": 5,
        "days": [
            {"day": 1, "name": "Chest", "body_parts": ["chest", "triceps"]},
            {"day": 2, "name": "Back", "body_parts": ["back", "biceps"]},
            {"day": 3, "name": "Shoulders", "body_parts": ["shoulders", "traps"]},
            {"day": 4, "name": "Arms", "body_parts": ["biceps", "triceps"]},
            {"day": 5, "name": "Legs", "body_parts": ["legs", "glutes"]},
        ],
    },
    "PUSH_PULL_LEGS_ARMS": {
        "type": "PUSH_PULL_LEGS_ARMS",
        "name": "Push/Pull/Legs/Arms",
        "days_per_week": 4,
        "days": [
            {"day": 1, "name": "Push", "body_parts": ["chest", "shoulders", "triceps"]},
            {"day": 2, "name": "Pull", "body_parts": ["back", "biceps"]},
            {"day": 3, "name": "Legs", "body_parts": ["legs", "glutes"]},
            {"day": 4, "name": "Arms", "body_parts": ["biceps", "triceps"]},
        ],
    },
    "CHEST_BACK_SHOULDERS_ARMS_LEGS": {
        "type": "CHEST_BACK_SHOULDERS_ARMS_LEGS",
        "name": "Chest & Back / Shoulders & Arms / Legs",
        "days_per_week": 3,
        "days": [
            {"day": 1, "name": "Chest & Back", "body_parts": ["chest", "upper back", "lats"]},
            {
                "day": 2,
                "name": "Shoulders & Arms",
                "body_parts": ["front delts", "lateral delts", "rear delts", "biceps", "triceps"],
            },
            {"day": 3, "name": "Legs", "body_parts": ["quads", "hamstrings", "glutes"]},
        ],
    },
}

DEFAULT_INTENSITY_DISTRIBUTION = {"heavy": 0.3, "moderate": 0.5, "light": 0.2}


def get_split_template(split_type):
    """Look up a template by type (case-insensitive); raises ValueError if unknown."""
    key = str(split_type or "").strip().upper()
    if key not in SPLIT_TEMPLATES:
        raise ValueError(
            f"Unknown split type '{split_type}'. Choose one of: {', '.join(SPLIT_TEMPLATES)}"
        )
    return SPLIT_TEMPLATES[key]
