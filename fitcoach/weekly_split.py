"""
Weekly session layout: split templates or priority frequencies -> seven-day schedule.

Days are indexed 0 = Monday ... 6 = Sunday, matching ``date.weekday()``.
"""

import math
from datetime import date, timedelta

from fitcoach.split_templates import DEFAULT_INTENSITY_DISTRIBUTION, get_split_template


DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

OPTIMAL_SCHEDULES = {
    1: [2],
    2: [0, 3],
    3: [0, 2, 4],
    4: [0, 1, 3, 4],
    5: [0, 1, 2, 3, 4],
    6: [0, 1, 2, 3, 4, 5],
    7: [0, 1, 2, 3, 4, 5, 6],
}


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def day_index(i, total_sessions):
    """Evenly spaced weekday for session ``i`` of ``total_sessions``."""
    return (i * 7) // total_sessions


def assign_intensities(total_sessions, distribution=None):
    """
    Intensity per session by proportional index.

    The first round(N * heavy) sessions are heavy, the next round(N * moderate)
    are moderate, the rest light.
    """
    distribution = distribution or DEFAULT_INTENSITY_DISTRIBUTION
    heavy = min(total_sessions, _round_half_up(total_sessions * float(distribution.get("heavy", 0))))
    moderate = min(
        total_sessions - heavy,
        _round_half_up(total_sessions * float(distribution.get("moderate", 0))),
    )
    light = total_sessions - heavy - moderate
    return ["heavy"] * heavy + ["moderate"] * moderate + ["light"] * light


def _layout(raw_sessions, distribution):
    total = len(raw_sessions)
    intensities = assign_intensities(total, distribution)
    sessions = []
    for i, raw in enumerate(raw_sessions):
        day = day_index(i, total)
        sessions.append({
            "day_of_week": day,
            "day_name": DAY_NAMES[day],
            "name": raw["name"],
            "body_parts": list(raw["body_parts"]),
            "intensity": intensities[i],
        })
    return sessions


def build_weekly_sessions(template, distribution=None, days_per_week=None):
    """
    One WeeklySession per slot, cycling the template's days.

    Args:
        template: split template dict, or a template type name like "PPL".
        distribution: {heavy, moderate, light} proportions.
        days_per_week: overrides the template's declared frequency.
    """
    if isinstance(template, str):
        template = get_split_template(template)

    days = template.get("days") or []
    if not days:
        raise ValueError(f"Split template '{template.get('name')}' has no days")

    total = int(days_per_week or template.get("days_per_week") or len(days))
    if total < 1 or total > 7:
        raise ValueError(f"days_per_week must be between 1 and 7, got {total}")

    raw_sessions = [days[i % len(days)] for i in range(total)]
    return _layout(raw_sessions, distribution)


def build_sessions_from_priorities(frequency, days_per_week, secondary_support=None, distribution=None):
    """
    Template-less weekly layout from a {priority: sessions_per_week} map.

    Priority sessions are interleaved round-robin. When priorities (or an
    explicit secondary list) need more room than the week has, one slot is
    kept for "Secondary Support" and overflowing priorities fold into it.
    Remaining slots become Secondary Support sessions sharing the secondary
    body parts.
    """
    days_per_week = int(days_per_week)
    if days_per_week < 1 or days_per_week > 7:
        raise ValueError(f"days_per_week must be between 1 and 7, got {days_per_week}")

    remaining = {str(name).strip().lower(): int(count) for name, count in (frequency or {}).items() if name}
    sequence = []
    while any(count > 0 for count in remaining.values()):
        for name in remaining:
            if remaining[name] > 0:
                sequence.append(name)
                remaining[name] -= 1

    secondary = []
    for part in secondary_support or []:
        part = str(part).strip().lower()
        if part and part not in secondary:
            secondary.append(part)

    reserve = 1 if (secondary or len(sequence) > days_per_week) and days_per_week > 1 else 0
    priority_slots = days_per_week - reserve
    kept = sequence[:priority_slots]
    for name in sequence[priority_slots:]:
        if name not in secondary and name not in kept:
            secondary.append(name)

    raw_sessions = [{"name": name.title(), "body_parts": [name]} for name in kept]

    open_slots = days_per_week - len(kept)
    support_count = min(open_slots, len(secondary))
    for j in range(support_count):
        raw_sessions.append({
            "name": "Secondary Support",
            "body_parts": secondary[j::support_count],
        })

    if not raw_sessions:
        return []
    return _layout(raw_sessions, distribution)


def intensity_for_date(sessions, on_date):
    """Intensity tier scheduled for a date's weekday, or None on a rest day."""
    weekday = on_date.weekday() if isinstance(on_date, date) else date.fromisoformat(str(on_date)).weekday()
    for session in sessions or []:
        if session["day_of_week"] == weekday:
            return session["intensity"]
    return None


def calculate_workout_schedule(workouts_per_week):
    """Weekday indices that should be training days for a weekly frequency."""
    try:
        count = int(workouts_per_week)
    except (TypeError, ValueError):
        count = 0
    return list(OPTIMAL_SCHEDULES.get(count, OPTIMAL_SCHEDULES[3]))


def should_workout_today(on_date, workouts_per_week, recent_workouts, custom_days=None):
    """
    Whether ``on_date`` is a training day.

    Uses the custom weekday list when given, else the optimal schedule for
    the frequency. A scheduled day is still a rest day once the weekly count
    is reached, or when yesterday was trained on a plan of fewer than five
    days a week.
    """
    if not isinstance(on_date, date):
        on_date = date.fromisoformat(str(on_date))

    valid_custom = [d for d in (custom_days or []) if 0 <= int(d) <= 6]
    if valid_custom:
        schedule = valid_custom
        weekly_limit = len(valid_custom)
    else:
        if not workouts_per_week or int(workouts_per_week) <= 0:
            return True
        schedule = calculate_workout_schedule(workouts_per_week)
        weekly_limit = int(workouts_per_week)

    if on_date.weekday() not in schedule:
        return False

    week_start = on_date - timedelta(days=on_date.weekday())
    week_end = week_start + timedelta(days=6)
    trained_dates = {str(w.get("date")) for w in recent_workouts or []}
    this_week = [
        d for d in trained_dates
        if week_start.isoformat() <= d <= week_end.isoformat() and d != on_date.isoformat()
    ]
    if len(this_week) >= weekly_limit:
        return False

    yesterday = (on_date - timedelta(days=1)).isoformat()
    if yesterday in trained_dates:
        if valid_custom:
            return True
        return int(workouts_per_week) >= 5
    return True
