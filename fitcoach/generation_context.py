"""
Point-in-time snapshot of everything one generation run reads from storage.
"""

from datetime import date, timedelta

from fitcoach.config import section
from fitcoach.errors import NoActiveGoal


def _as_date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def week_start(on_date):
    """Monday of the week containing ``on_date``."""
    on_date = _as_date(on_date)
    return on_date - timedelta(days=on_date.weekday())


def build_generation_context(store, user_id, on_date, config=None):
    """
    Read the goal, history and reference data for (user, date) once.

    Returns:
        dict with keys: user, goal, date, recent_workouts, exercises, meals,
        blocked_exercise_ids, blocked_meal_ids, recent_exercise_ids,
        recent_meal_ids, week_exercise_ids, week_meal_ids

    Raises:
        NoActiveGoal: the user has no active goal.
    """
    generation = section(config, "generation")
    on_date = _as_date(on_date)

    goal = store.get_active_goal(user_id)
    if goal is None:
        raise NoActiveGoal(user_id)

    history_start = on_date - timedelta(days=int(generation["history_days"]))
    recency_start = on_date - timedelta(days=int(generation["recency_days"]))
    monday = week_start(on_date)

    blocked = store.get_blocked_items(user_id)
    return {
        "user": store.get_user(user_id) or {"id": user_id},
        "goal": goal,
        "date": on_date,
        "recent_workouts": store.get_recent_workouts(user_id, history_start.isoformat(), on_date.isoformat()),
        "exercises": store.get_candidate_exercises(),
        "meals": store.get_candidate_meals(),
        "blocked_exercise_ids": {b["item_id"] for b in blocked if b["item_type"] == "exercise"},
        "blocked_meal_ids": {b["item_id"] for b in blocked if b["item_type"] == "meal"},
        "recent_exercise_ids": store.get_used_exercise_ids(user_id, recency_start.isoformat(), on_date.isoformat()),
        "recent_meal_ids": store.get_used_meal_ids(user_id, recency_start.isoformat(), on_date.isoformat()),
        "week_exercise_ids": store.get_used_exercise_ids(user_id, monday.isoformat(), on_date.isoformat()),
        "week_meal_ids": store.get_used_meal_ids(user_id, monday.isoformat(), on_date.isoformat()),
    }
