"""
Deterministic progression targets and fatigue detection from logged sets.
"""

import math
import re
from datetime import date, timedelta

from fitcoach.exercise_normalizer import canonical_key


DEFAULT_START_WEIGHT = 50.0
WEIGHT_INCREMENT = 2.5
FAILURE_RATIO = 0.8
HIGH_RPE = 9.0
LOW_RPE = 7.0

REP_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:-|to|–)\s*(\d+)\s*$")


def _parse_float(value):
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_int(value):
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def _parse_date(value):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def round_to_increment(value, increment=WEIGHT_INCREMENT):
    """Round half-up to the nearest multiple of ``increment``."""
    return math.floor(value / increment + 0.5) * increment


def format_load(weight):
    """Render a weight without a trailing .0 (52.5 -> "52.5", 50.0 -> "50")."""
    if weight is None:
        return ""
    if float(weight).is_integer():
        return str(int(weight))
    return f"{weight:.1f}"


def parse_rep_range(text):
    """Return (low, high) for "8-10" style ranges, (n, n) for "8", else None."""
    if text is None:
        return None
    raw = str(text).strip()
    match = REP_RANGE_RE.match(raw)
    if match:
        low, high = int(match.group(1)), int(match.group(2))
        return (min(low, high), max(low, high))
    single = _parse_int(raw)
    if single is not None and single > 0:
        return (single, single)
    return None


def target_reps_for_range(text, default=10):
    bounds = parse_rep_range(text)
    return bounds[1] if bounds else default


def increase_fraction(rpe, reached_target):
    """Weight increase for a successful session, from RPE band and rep outcome."""
    if rpe is None:
        return 0.03 if reached_target else 0.02
    if rpe <= LOW_RPE:
        return 0.05 if reached_target else 0.04
    if rpe >= HIGH_RPE:
        return 0.01 if reached_target else 0.0
    return 0.03 if reached_target else 0.02


def _set_number(entry):
    return _parse_int(entry.get("set_number")) or 0


def _recorded_performance(entry):
    """(weight, reps, rpe) preferring logged actuals over planned values."""
    weight = _parse_float(entry.get("actual_weight"))
    if weight is None:
        weight = _parse_float(entry.get("planned_weight"))
    reps = _parse_int(entry.get("actual_reps"))
    if reps is None:
        reps = _parse_int(entry.get("planned_reps"))
    rpe = _parse_float(entry.get("actual_rpe"))
    return weight, reps, rpe


def last_completed_set(session, exercise_name):
    """
    The highest-numbered completed set for an exercise in one session that
    has both a weight and reps recorded, or None.
    """
    key = canonical_key(exercise_name)
    best = None
    for exercise in session.get("exercises", []):
        if canonical_key(exercise.get("name")) != key:
            continue
        for entry in exercise.get("sets", []):
            if not entry.get("completed"):
                continue
            weight, reps, _ = _recorded_performance(entry)
            if weight is None or reps is None:
                continue
            if best is None or _set_number(entry) >= _set_number(best):
                best = entry
    return best


def compute_progression_target(history, exercise_name, target_reps, default_weight=DEFAULT_START_WEIGHT):
    """
    Next {next_weight, target_reps} for one exercise.

    Args:
        history: sessions ordered most recent first.
        exercise_name: matched case-insensitively.
        target_reps: upper bound of the exercise's rep range.

    The first session with a usable completed set decides the result. Reps
    under 80% of target keep the weight unchanged; otherwise the weight grows
    by an RPE-banded percentage and is rounded to the nearest 2.5.
    """
    for session in history or []:
        entry = last_completed_set(session, exercise_name)
        if entry is None:
            continue

        weight, reps, rpe = _recorded_performance(entry)
        if reps < FAILURE_RATIO * target_reps:
            return {"next_weight": weight, "target_reps": target_reps}

        increase = increase_fraction(rpe, reps >= target_reps)
        return {
            "next_weight": round_to_increment(weight * (1 + increase)),
            "target_reps": target_reps,
        }

    return {"next_weight": default_weight, "target_reps": target_reps}


def compute_progression_targets(recent_workouts, exercises, rep_ranges):
    """
    Targets for every candidate exercise, keyed by exercise name.

    ``recent_workouts`` comes from storage oldest first; ``exercises`` are
    candidate dicts with ``name`` and ``is_compound``.
    """
    history = list(reversed(recent_workouts or []))
    targets = {}
    for exercise in exercises:
        category = "compound" if exercise.get("is_compound") else "accessory"
        target_reps = target_reps_for_range((rep_ranges or {}).get(category))
        targets[exercise["name"]] = compute_progression_target(history, exercise["name"], target_reps)
    return targets


def apply_deload(target, factor=0.90, rep_bump=2):
    return {
        "next_weight": round_to_increment(target["next_weight"] * factor),
        "target_reps": target["target_reps"] + rep_bump,
    }


def compute_cardio_target(recent_workouts, exercise_name, goal=None):
    """
    Distance target for a single cardio slot.

    Last completed distance plus 5% (rounded to 0.1); without history, half
    the goal distance when the goal is distance-based, else 1.0.
    """
    key = canonical_key(exercise_name)
    for session in reversed(recent_workouts or []):
        for exercise in session.get("exercises", []):
            if canonical_key(exercise.get("name")) != key:
                continue
            distances = []
            for entry in exercise.get("sets", []):
                if not entry.get("completed"):
                    continue
                distance = _parse_float(entry.get("actual_distance"))
                if distance is None:
                    distance = _parse_float(entry.get("planned_distance"))
                if distance is not None and distance > 0:
                    distances.append(distance)
            if distances:
                return {
                    "next_weight": 0.0,
                    "target_reps": 1,
                    "distance": round(distances[-1] * 1.05, 1),
                }

    distance = 1.0
    target = (goal or {}).get("target") or {}
    value = _parse_float((goal or {}).get("value"))
    if target.get("metric") == "distance" and value:
        distance = max(round(value / 2.0, 1), 0.1)
    return {"next_weight": 0.0, "target_reps": 1, "distance": distance}


def detect_fatigue(
    recent_workouts,
    as_of_date,
    lookback_days=14,
    failed_reps_threshold=0.30,
    high_rpe_threshold=0.40,
):
    """
    Scan completed sets in the lookback window for deload signals.

    Returns:
        dict with failed_reps_ratio, high_rpe_ratio, sets_considered,
        should_deload. Thresholds are inclusive.
    """
    end = _parse_date(as_of_date)
    start = end - timedelta(days=lookback_days) if end else None

    completed = 0
    rep_pairs = 0
    failed = 0
    rpe_sets = 0
    high_rpe = 0

    for session in recent_workouts or []:
        session_date = _parse_date(session.get("date"))
        if end and session_date and not (start <= session_date <= end):
            continue
        for exercise in session.get("exercises", []):
            for entry in exercise.get("sets", []):
                if not entry.get("completed"):
                    continue
                completed += 1

                planned = _parse_int(entry.get("planned_reps"))
                actual = _parse_int(entry.get("actual_reps"))
                if planned is not None and actual is not None:
                    rep_pairs += 1
                    if actual < planned:
                        failed += 1

                rpe = _parse_float(entry.get("actual_rpe"))
                if rpe is not None:
                    rpe_sets += 1
                    if rpe >= HIGH_RPE:
                        high_rpe += 1

    failed_ratio = failed / rep_pairs if rep_pairs else 0.0
    rpe_ratio = high_rpe / rpe_sets if rpe_sets else 0.0
    return {
        "failed_reps_ratio": failed_ratio,
        "high_rpe_ratio": rpe_ratio,
        "sets_considered": completed,
        "should_deload": failed_ratio >= failed_reps_threshold or rpe_ratio >= high_rpe_threshold,
    }


def format_targets_for_prompt(targets):
    """Render targets as exact-number lines for the generation prompt."""
    if not targets:
        return "No progression targets."

    lines = []
    for name in sorted(targets):
        target = targets[name]
        if target.get("distance") is not None:
            lines.append(f"- {name}: 1 set, distance {target['distance']:.1f}, weight 0")
        else:
            lines.append(
                f"- {name}: weight {format_load(target['next_weight'])} x {target['target_reps']} reps"
            )
    return "\n".join(lines)
