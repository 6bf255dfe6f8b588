"""
Direct edits to an already generated session: shorten, extend, move, block.
"""

import random

from fitcoach.candidate_selector import select_exercises
from fitcoach.config import section
from fitcoach.errors import NoCandidatesAvailable
from fitcoach.generation_context import build_generation_context
from fitcoach.progression_rules import compute_progression_target
from fitcoach.workout_db import ITEM_TYPES


REDUCE_MODES = ("remove_set", "remove_exercise")
ACCESSORY_SETS = 3
ACCESSORY_REPS = 12


def _load_session(store, session_id):
    session = store.get_session(session_id)
    if session is None:
        raise ValueError(f"Session {session_id} not found")
    return session


def reduce_workout_volume(store, session_id, mode="remove_set"):
    """
    Make a session shorter without touching completed work.

    Modes:
        remove_set: drop the last incomplete set of every exercise.
        remove_exercise: drop every incomplete set of the exercise with the
            most incomplete sets (first one on ties).

    Returns the number of sets removed.
    """
    if mode not in REDUCE_MODES:
        raise ValueError(f"Unknown mode '{mode}'. Expected one of: {', '.join(REDUCE_MODES)}")

    session = _load_session(store, session_id)
    open_sets = []
    for exercise in session["exercises"]:
        pending = [s for s in exercise["sets"] if not s["completed"]]
        if pending:
            open_sets.append((exercise, pending))

    if not open_sets:
        print("  Nothing to reduce: no incomplete sets left.")
        return 0

    if mode == "remove_set":
        to_delete = [max(pending, key=lambda s: s["set_number"])["id"] for _, pending in open_sets]
    else:
        exercise, pending = max(open_sets, key=lambda pair: len(pair[1]))
        to_delete = [s["id"] for s in pending]
        print(f"  Removing {exercise['name']}")

    with store.transaction():
        store.delete_exercise_sets(to_delete)

    print(f"✓ Removed {len(to_delete)} set(s) from session {session_id}")
    return len(to_delete)


def add_accessory_exercise(store, user_id, on_date, body_part, config=None, rng=None):
    """
    Append one accessory for ``body_part`` to the session on ``on_date``:
    3 sets of 12 at the exercise's progression weight.

    Returns the added exercise dict.
    """
    session = store.get_session_by_date(user_id, str(on_date))
    if session is None:
        raise ValueError(f"No workout found for {on_date}. Generate the plan first.")

    generation = section(config, "generation")
    ctx = build_generation_context(store, user_id, session["date"], config)
    in_session = {e["exercise_id"] for e in session["exercises"]}
    chosen = select_exercises(
        ctx["exercises"],
        [body_part],
        1,
        exclude_ids=in_session,
        blocked_ids=ctx["blocked_exercise_ids"],
        recent_ids=ctx["recent_exercise_ids"],
        is_compound=False,
        rng=rng or random.Random(),
        recent_weight=float(generation["recent_weight"]),
        fresh_weight=float(generation["fresh_weight"]),
        required=False,
    )
    if not chosen:
        raise NoCandidatesAvailable("exercise", f"accessories for {body_part}")

    exercise = chosen[0]
    history = list(reversed(ctx["recent_workouts"]))
    target = compute_progression_target(history, exercise["name"], ACCESSORY_REPS)
    order = len(session["exercises"])

    with store.transaction():
        for number in range(1, ACCESSORY_SETS + 1):
            store.persist_exercise_set(
                session["id"],
                exercise["id"],
                number,
                target["next_weight"],
                ACCESSORY_REPS,
                exercise_order=order,
            )

    print(f"✓ Added {exercise['name']} ({ACCESSORY_SETS} x {ACCESSORY_REPS})")
    return exercise


def move_workout_session(store, session_id, new_date):
    """Move a session to another date; the user must not already train that day."""
    session = _load_session(store, session_id)
    with store.transaction():
        store.move_session(session_id, str(new_date))
    print(f"✓ Moved session {session_id} from {session['date']} to {new_date}")


def block_item(store, user_id, item_type, name):
    """Permanently exclude an exercise or meal (looked up by name). Returns its id."""
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unknown item type '{item_type}'")

    item = store.find_exercise(name) if item_type == "exercise" else store.find_meal(name)
    if item is None:
        raise ValueError(f"No {item_type} named '{name}'")

    with store.transaction():
        store.block_item(user_id, item_type, item["id"], item["name"])
    print(f"✓ Blocked {item_type} '{item['name']}'")
    return item["id"]
