"""
Canonical exercise and body-part normalization.

Single source of truth for exercise identity (case-insensitive names),
primary-lift lookup and body-part grouping. Every selector, validator and
storage call compares names through this module.
"""

import re


# ---------------------------------------------------------------------------
# Qualifiers that don't change exercise identity
# ---------------------------------------------------------------------------
STRIP_PAREN_PATTERNS = [
    re.compile(r"\s*\(warm-?up(?:\s+set)?\s*\d*\)", re.IGNORECASE),
    re.compile(r"\s*\(working\)", re.IGNORECASE),
    re.compile(r"\s*\(back-?off\)", re.IGNORECASE),
    re.compile(r"\s*\(finisher\)", re.IGNORECASE),
    re.compile(r"\s*\(opt\)", re.IGNORECASE),
    re.compile(r"\s*\(deload\)", re.IGNORECASE),
]

ABBREVIATION_MAP = [
    (re.compile(r"\bdb\b", re.IGNORECASE), "dumbbell"),
    (re.compile(r"\bbb\b", re.IGNORECASE), "barbell"),
    (re.compile(r"\bohp\b", re.IGNORECASE), "overhead press"),
]

DEPLURALIZE_PATTERNS = [
    (re.compile(r"\bpull[\s-]?ups\b", re.IGNORECASE), "pull-up"),
    (re.compile(r"\bchin[\s-]?ups\b", re.IGNORECASE), "chin-up"),
    (re.compile(r"\bpush[\s-]?ups\b", re.IGNORECASE), "push-up"),
    (re.compile(r"\bsit[\s-]?ups\b", re.IGNORECASE), "sit-up"),
    (re.compile(r"\bdips\b", re.IGNORECASE), "dip"),
]

# First entry in each group is the canonical key.
ALIAS_GROUPS = [
    ["bench press", "bench", "barbell bench press", "flat bench press"],
    ["squat", "back squat", "barbell squat", "barbell back squat"],
    ["deadlift", "conventional deadlift", "barbell deadlift"],
    ["romanian deadlift", "rdl"],
    ["shoulder press", "overhead press", "military press"],
    ["pull-up", "pull up", "pullup"],
    ["chin-up", "chin up", "chinup"],
    ["push-up", "push up", "pushup"],
    ["sit-up", "sit up", "situp"],
    ["running", "run", "jog", "jogging"],
    ["cycling", "biking", "bike"],
]


# ---------------------------------------------------------------------------
# Approved primary lifts and the muscles that support them
# ---------------------------------------------------------------------------
PRIMARY_LIFT_SUPPORTING_MUSCLES = {
    # Upper push
    "bench press": ["chest", "triceps", "front delts"],
    "incline dumbbell press": ["chest", "triceps", "front delts"],
    "chest press": ["chest", "triceps", "front delts"],
    "dumbbell chest press": ["chest", "triceps", "front delts"],
    "incline dumbbell chest press": ["chest", "triceps", "front delts"],
    "dip": ["triceps", "chest", "front delts"],
    "push-up": ["chest", "triceps", "front delts"],
    "shoulder press": ["front delts", "triceps", "lateral delts"],
    "chest cable fly": ["chest", "front delts"],
    # Upper pull
    "pull-up": ["lats", "biceps", "upper back", "rear delts"],
    "chin-up": ["lats", "biceps", "upper back", "rear delts"],
    "lat pulldown": ["lats", "biceps", "upper back"],
    "barbell row": ["upper back", "lats", "biceps", "rear delts"],
    "dumbbell row": ["upper back", "lats", "biceps", "rear delts"],
    "seated cable row": ["upper back", "lats", "biceps", "rear delts"],
    # Lower body
    "squat": ["quads", "glutes", "hamstrings"],
    "deadlift": ["hamstrings", "glutes", "lower back"],
    "romanian deadlift": ["hamstrings", "glutes", "lower back"],
    "leg press": ["quads", "glutes"],
    "split squat": ["quads", "glutes"],
    "bulgarian split squat": ["quads", "glutes"],
    # Arms
    "barbell curl": ["biceps", "forearms"],
    "dumbbell curl": ["biceps", "forearms"],
    # Core
    "plank": ["abs", "obliques"],
    "sit-up": ["abs", "obliques"],
}

PRIMARY_LIFTS = list(PRIMARY_LIFT_SUPPORTING_MUSCLES)


# ---------------------------------------------------------------------------
# Body parts in rotation order, and the coarse group each specific part rolls up to
# ---------------------------------------------------------------------------
BODY_PARTS = [
    "chest",
    "upper back",
    "lats",
    "lower back",
    "traps",
    "front delts",
    "lateral delts",
    "rear delts",
    "shoulders",
    "biceps",
    "triceps",
    "forearms",
    "abs",
    "obliques",
    "core",
    "quads",
    "hamstrings",
    "glutes",
    "calves",
    "hip flexors",
    "inner thighs",
    "outer thighs",
    "outer hips",
    "ankles",
    "wrists",
    "neck",
    "cardio",
]

BODY_PART_PARENTS = {
    "front delts": "shoulders",
    "lateral delts": "shoulders",
    "rear delts": "shoulders",
    "upper back": "back",
    "lats": "back",
    "lower back": "back",
    "traps": "back",
    "biceps": "arms",
    "triceps": "arms",
    "forearms": "arms",
    "abs": "core",
    "obliques": "core",
    "quads": "legs",
    "hamstrings": "legs",
    "glutes": "legs",
    "calves": "legs",
    "inner thighs": "legs",
    "outer thighs": "legs",
    "hip flexors": "hips",
    "outer hips": "hips",
}

CARDIO_OPTIONS = [
    "running",
    "swimming",
    "cycling",
    "rowing",
    "stair climber",
    "elliptical",
    "jump rope",
    "hiking",
]


def normalize_body_part(part):
    return re.sub(r"\s+", " ", str(part or "").strip().lower())


def parent_body_part(part):
    return BODY_PART_PARENTS.get(normalize_body_part(part))


def body_part_matches(exercise_part, wanted_part):
    """
    True when an exercise's body part satisfies a requested one.

    Matches on equality, substring in either direction, or a shared parent
    group ("front delts" satisfies "shoulders" and vice versa).
    """
    a = normalize_body_part(exercise_part)
    b = normalize_body_part(wanted_part)
    if not a or not b:
        return False
    if a == b or a in b or b in a:
        return True
    parent_a = BODY_PART_PARENTS.get(a)
    parent_b = BODY_PART_PARENTS.get(b)
    return parent_a == b or parent_b == a


def expand_with_parents(parts):
    """Return parts followed by their parent groups, order-preserving, no repeats."""
    result = []
    for part in parts:
        key = normalize_body_part(part)
        if key and key not in result:
            result.append(key)
    for part in list(result):
        parent = BODY_PART_PARENTS.get(part)
        if parent and parent not in result:
            result.append(parent)
    return result


class ExerciseNormalizer:
    """
    Canonical exercise normalization and matching.

    Usage:
        normalizer = ExerciseNormalizer()
        normalizer.canonical_key("Bench Press (Warm-up Set 2)")  # -> "bench press"
        normalizer.are_same_exercise("Pull Ups", "pull-up")  # -> True
        normalizer.find_primary_lift("Barbell Bench Press")  # -> "bench press"
    """

    def __init__(self, alias_groups=None):
        self._alias_to_canonical = {}
        for group in alias_groups or ALIAS_GROUPS:
            canonical = self._compute_canonical_key(group[0])
            for alias in group:
                self._alias_to_canonical[self._compute_canonical_key(alias)] = canonical

    def _compute_canonical_key(self, name):
        """Strip identity-neutral qualifiers, expand abbreviations, lowercase."""
        if not name:
            return ""

        result = re.sub(r"\s+", " ", str(name).strip())
        for pattern in STRIP_PAREN_PATTERNS:
            result = pattern.sub("", result)
        for pattern, replacement in ABBREVIATION_MAP:
            result = pattern.sub(replacement, result)
        for pattern, replacement in DEPLURALIZE_PATTERNS:
            result = pattern.sub(replacement, result)

        return re.sub(r"\s+", " ", result).strip().lower()

    def canonical_key(self, name):
        """Stable key used for de-duplication, storage and matching."""
        key = self._compute_canonical_key(name)
        return self._alias_to_canonical.get(key, key)

    def are_same_exercise(self, a, b):
        if not a or not b:
            return False
        return self.canonical_key(a) == self.canonical_key(b)

    def find_match(self, raw, candidates):
        """
        Return the candidate name that is the same exercise as ``raw``.

        Only exact canonical matches count; anything looser would let a
        generated name slip past the allowed-list check.
        """
        if not raw or not candidates:
            return None
        key = self.canonical_key(raw)
        for candidate in candidates:
            if self.canonical_key(candidate) == key:
                return candidate
        return None

    def find_primary_lift(self, name):
        """
        Match a name against the approved primary lifts.

        Exact canonical match first, then containment either way
        ("incline bench press" -> "bench press").
        """
        if not name:
            return None
        key = self.canonical_key(name)
        if key in PRIMARY_LIFT_SUPPORTING_MUSCLES:
            return key
        for lift in PRIMARY_LIFTS:
            if lift in key or key in lift:
                return lift
        return None

    def is_primary_lift(self, name):
        return self.find_primary_lift(name) is not None

    def supporting_muscles(self, name):
        lift = self.find_primary_lift(name)
        if not lift:
            return []
        return list(PRIMARY_LIFT_SUPPORTING_MUSCLES[lift])


# ---------------------------------------------------------------------------
# Module-level singleton for convenience
# ---------------------------------------------------------------------------
_default_normalizer = None


def get_normalizer():
    """Get or create the module-level singleton normalizer."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = ExerciseNormalizer()
    return _default_normalizer


def canonical_key(name):
    return get_normalizer().canonical_key(name)
