"""
Configuration loading for config.yaml with built-in defaults.
"""

import copy
import os

import yaml


DEFAULT_CONFIG = {
    "claude": {
        "api_key_env": "ANTHROPIC_API_KEY",
        "model": "claude-sonnet-4-5",
        "max_tokens": 2048,
        "timeout": 120,
        "temperature": 0.4,
    },
    "database": {
        "path": "data/fitcoach.db",
    },
    "generation": {
        "max_workout_attempts": 3,
        "max_meal_attempts": 3,
        "history_days": 21,
        "recency_days": 14,
        "recent_weight": 0.3,
        "fresh_weight": 1.0,
        "candidate_slack": 2,
        "meal_candidate_count": 8,
        "meal_slots": ["breakfast", "lunch", "dinner", "snack"],
    },
    "fatigue": {
        "lookback_days": 14,
        "failed_reps_threshold": 0.30,
        "high_rpe_threshold": 0.40,
        "deload_factor": 0.90,
        "deload_rep_bump": 2,
    },
    "validation": {
        # Error tier gates acceptance; warning tier is the prompt target.
        # Lower both to 50 / 25 for the stricter pairing.
        "calorie_error_tolerance": 100,
        "calorie_warning_tolerance": 50,
        "weight_tolerance": 0.1,
        "max_reasonable_weight": 500,
    },
    "schedule": {
        "intensity_distribution": {"heavy": 0.3, "moderate": 0.5, "light": 0.2},
    },
    "profile": {
        "weight_kg": 70,
        "height_cm": 175,
    },
}


def _merge(base, override):
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def default_config():
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(path=None):
    """Load config.yaml (if present) merged over the defaults."""
    config = default_config()
    if path is None:
        path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.yaml")

    if not os.path.exists(path):
        return config

    with open(path, "r") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return _merge(config, loaded)


def section(config, name):
    """Return one config section, falling back to defaults for missing keys."""
    merged = copy.deepcopy(DEFAULT_CONFIG.get(name, {}))
    return _merge(merged, (config or {}).get(name) or {})
