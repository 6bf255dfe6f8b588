"""
Weighted random selection of exercises and meals from filtered candidate pools.

Recently used items stay eligible at a reduced weight; blocked and excluded
items never come back. The random source is always passed in.
"""

import random

from fitcoach.errors import NoCandidatesAvailable
from fitcoach.exercise_normalizer import body_part_matches, canonical_key


RECENT_WEIGHT = 0.3
FRESH_WEIGHT = 1.0


def weighted_choice(items, weights, rng):
    """Index of one item drawn with probability proportional to its weight."""
    total = sum(max(w, 0.0) for w in weights)
    if total <= 0:
        return rng.randrange(len(items))
    r = rng.random() * total
    upto = 0.0
    for index, w in enumerate(weights):
        upto += max(w, 0.0)
        if upto >= r:
            return index
    return len(items) - 1


def weighted_sample(items, weights, count, rng):
    """Draw up to ``count`` distinct items without replacement."""
    pool = list(items)
    remaining = list(weights)
    picked = []
    while pool and len(picked) < count:
        index = weighted_choice(pool, remaining, rng)
        picked.append(pool.pop(index))
        remaining.pop(index)
    return picked


def _id_set(values):
    return {v for v in (values or []) if v is not None}


def filter_candidates(pool, exclude_ids=None, blocked_ids=None):
    """Drop blocked and excluded items, then de-duplicate by case-insensitive name."""
    exclude_ids = _id_set(exclude_ids)
    blocked_ids = _id_set(blocked_ids)
    seen = set()
    result = []
    for item in pool or []:
        if item.get("id") in blocked_ids or item.get("id") in exclude_ids:
            continue
        key = canonical_key(item.get("name"))
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def recency_weights(items, recent_ids=None, recent_weight=RECENT_WEIGHT, fresh_weight=FRESH_WEIGHT):
    recent_ids = _id_set(recent_ids)
    return [recent_weight if item.get("id") in recent_ids else fresh_weight for item in items]


def _rng(rng):
    return rng if rng is not None else random.Random()


def select_exercises(
    pool,
    body_parts,
    count,
    exclude_ids=None,
    blocked_ids=None,
    recent_ids=None,
    is_compound=None,
    rng=None,
    priority_name=None,
    recent_weight=RECENT_WEIGHT,
    fresh_weight=FRESH_WEIGHT,
    required=True,
):
    """
    Pick ``count`` distinct exercises for the requested body parts.

    Args:
        pool: exercise dicts with id, name, body_part, is_compound.
        body_parts: requested parts; an exercise matches by equality,
            substring or shared parent group.
        exclude_ids: same-week usage, never returned.
        blocked_ids: the user's permanent blocks, never returned.
        recent_ids: used in the recency window; drawn at ``recent_weight``.
        is_compound: True/False to filter by compound flag, None for both.
        priority_name: primary lift placed first when it survives the
            exclusion and block filters; the part/compound filters do not apply.
        required: raise NoCandidatesAvailable when nothing survives filtering.

    Returns fewer than ``count`` items when the filtered pool is smaller.
    """
    if count <= 0:
        return []

    blocked = _id_set(blocked_ids)
    excluded = _id_set(exclude_ids)
    rng = _rng(rng)
    chosen = []

    if priority_name:
        priority_key = canonical_key(priority_name)
        for item in filter_candidates(pool, exclude_ids=excluded, blocked_ids=blocked):
            if canonical_key(item.get("name")) == priority_key:
                chosen.append(item)
                break

    chosen_keys = {canonical_key(item["name"]) for item in chosen}
    candidates = [
        item for item in filter_candidates(pool, exclude_ids=excluded, blocked_ids=blocked)
        if canonical_key(item.get("name")) not in chosen_keys
        and (is_compound is None or bool(item.get("is_compound")) == bool(is_compound))
        and any(body_part_matches(item.get("body_part"), part) for part in body_parts or [])
    ]

    if not candidates and not chosen:
        if required:
            raise NoCandidatesAvailable("exercise", f"body parts: {', '.join(body_parts or [])}")
        return []

    weights = recency_weights(candidates, recent_ids, recent_weight, fresh_weight)
    chosen.extend(weighted_sample(candidates, weights, count - len(chosen), rng))
    return chosen


def _meal_types(meal):
    return {str(t).strip().lower() for t in meal.get("meal_types") or [] if t}


def select_meals(
    pool,
    meal_types,
    count,
    exclude_ids=None,
    blocked_ids=None,
    recent_ids=None,
    rng=None,
    recent_weight=RECENT_WEIGHT,
    fresh_weight=FRESH_WEIGHT,
    required=True,
):
    """
    Pick ``count`` distinct meals for the requested slots.

    Untyped meals satisfy any slot. A second pass tops up from meals of any
    type so ``count`` is met whenever inventory allows.
    """
    if count <= 0:
        return []

    rng = _rng(rng)
    wanted = {str(t).strip().lower() for t in meal_types or []}
    candidates = filter_candidates(pool, exclude_ids=exclude_ids, blocked_ids=blocked_ids)
    if not candidates:
        if required:
            raise NoCandidatesAvailable("meal", f"meal types: {', '.join(sorted(wanted)) or 'any'}")
        return []

    first_pass = [m for m in candidates if not _meal_types(m) or not wanted or _meal_types(m) & wanted]
    weights = recency_weights(first_pass, recent_ids, recent_weight, fresh_weight)
    chosen = weighted_sample(first_pass, weights, count, rng)

    if len(chosen) < count:
        chosen_ids = {m.get("id") for m in chosen}
        rest = [m for m in candidates if m.get("id") not in chosen_ids]
        weights = recency_weights(rest, recent_ids, recent_weight, fresh_weight)
        chosen.extend(weighted_sample(rest, weights, count - len(chosen), rng))

    return chosen
