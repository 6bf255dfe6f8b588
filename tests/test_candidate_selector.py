import random
import unittest

from fitcoach.candidate_selector import (
    filter_candidates,
    select_exercises,
    select_meals,
    weighted_choice,
)
from fitcoach.errors import NoCandidatesAvailable


EXERCISES = [
    {"id": 1, "name": "Bench Press", "body_part": "chest", "is_compound": True},
    {"id": 2, "name": "Incline Dumbbell Press", "body_part": "chest", "is_compound": True},
    {"id": 3, "name": "Chest Cable Fly", "body_part": "chest", "is_compound": False},
    {"id": 4, "name": "Pec Deck", "body_part": "chest", "is_compound": False},
    {"id": 5, "name": "Triceps Pushdown", "body_part": "triceps", "is_compound": False},
    {"id": 6, "name": "Lateral Raise", "body_part": "lateral delts", "is_compound": False},
    {"id": 7, "name": "Squat", "body_part": "quads", "is_compound": True},
]

MEALS = [
    {"id": 1, "name": "Oats", "calories": 450, "protein": 30, "meal_types": ["breakfast"]},
    {"id": 2, "name": "Chicken Bowl", "calories": 700, "protein": 50, "meal_types": ["lunch", "dinner"]},
    {"id": 3, "name": "Salmon Plate", "calories": 750, "protein": 45, "meal_types": ["dinner"]},
    {"id": 4, "name": "Shake", "calories": 300, "protein": 35, "meal_types": ["snack"]},
    {"id": 5, "name": "Anytime Wrap", "calories": 550, "protein": 35, "meal_types": []},
]


class FilterTests(unittest.TestCase):
    def test_blocked_excluded_and_duplicate_names_dropped(self):
        pool = EXERCISES + [{"id": 8, "name": "bench press", "body_part": "chest", "is_compound": True}]
        result = filter_candidates(pool, exclude_ids={2}, blocked_ids={3})
        ids = [e["id"] for e in result]
        self.assertNotIn(2, ids)
        self.assertNotIn(3, ids)
        self.assertIn(1, ids)
        self.assertNotIn(8, ids)

    def test_weighted_choice_with_zero_weights_still_picks(self):
        rng = random.Random(3)
        self.assertIn(weighted_choice(["a", "b"], [0, 0], rng), (0, 1))


class SelectExercisesTests(unittest.TestCase):
    def test_excluded_and_blocked_never_selected(self):
        rng = random.Random(42)
        for _ in range(1000):
            chosen = select_exercises(
                EXERCISES,
                ["chest", "triceps"],
                3,
                exclude_ids={2},
                blocked_ids={5},
                rng=rng,
            )
            ids = {e["id"] for e in chosen}
            self.assertFalse(ids & {2, 5})
            self.assertEqual(len(chosen), 3)

    def test_recent_items_are_drawn_less_often(self):
        rng = random.Random(7)
        pool = EXERCISES[2:4]
        picks = {3: 0, 4: 0}
        for _ in range(1000):
            chosen = select_exercises(pool, ["chest"], 1, recent_ids={3}, rng=rng)
            picks[chosen[0]["id"]] += 1
        self.assertGreater(picks[3], 0)
        self.assertGreater(picks[4], picks[3] * 2)

    def test_priority_lift_comes_first(self):
        rng = random.Random(1)
        for _ in range(50):
            chosen = select_exercises(
                EXERCISES, ["triceps"], 2, is_compound=False, rng=rng, priority_name="bench press"
            )
            self.assertEqual([e["name"] for e in chosen], ["Bench Press", "Triceps Pushdown"])

    def test_priority_lift_used_this_week_is_not_returned(self):
        rng = random.Random(1)
        for _ in range(50):
            chosen = select_exercises(
                EXERCISES,
                ["chest"],
                2,
                exclude_ids={1},
                is_compound=True,
                rng=rng,
                priority_name="bench press",
            )
            self.assertEqual([e["id"] for e in chosen], [2])

    def test_random_pools_respect_exclusions_and_stay_unique(self):
        rng = random.Random(99)
        for _ in range(1000):
            pool = rng.sample(EXERCISES, rng.randint(0, len(EXERCISES)))
            excluded = {e["id"] for e in EXERCISES if rng.random() < 0.3}
            blocked = {e["id"] for e in EXERCISES if rng.random() < 0.2}
            count = rng.randint(1, 6)
            chosen = select_exercises(
                pool,
                ["chest", "triceps", "lateral delts"],
                count,
                exclude_ids=excluded,
                blocked_ids=blocked,
                rng=rng,
                priority_name="Bench Press",
                required=False,
            )
            ids = [e["id"] for e in chosen]
            self.assertFalse(set(ids) & (excluded | blocked))
            self.assertEqual(len(ids), len(set(ids)))
            self.assertLessEqual(len(ids), count)

    def test_blocked_priority_lift_is_not_forced(self):
        chosen = select_exercises(
            EXERCISES, ["chest"], 2, blocked_ids={1}, rng=random.Random(0), priority_name="Bench Press"
        )
        self.assertNotIn("bench press", [e["name"].lower() for e in chosen])

    def test_compound_filter_and_short_pool(self):
        chosen = select_exercises(EXERCISES, ["chest"], 5, is_compound=True, rng=random.Random(0))
        self.assertEqual({e["id"] for e in chosen}, {1, 2})

    def test_empty_pool_raises_when_required(self):
        with self.assertRaises(NoCandidatesAvailable):
            select_exercises(EXERCISES, ["calves"], 2, rng=random.Random(0))
        self.assertEqual(select_exercises(EXERCISES, ["calves"], 2, rng=random.Random(0), required=False), [])


class SelectMealsTests(unittest.TestCase):
    def test_slot_matches_and_untyped_meals(self):
        rng = random.Random(11)
        for _ in range(200):
            chosen = select_meals(MEALS, ["breakfast"], 2, rng=rng)
            self.assertEqual({m["id"] for m in chosen}, {1, 5})

    def test_second_pass_tops_up_from_other_types(self):
        chosen = select_meals(MEALS, ["breakfast"], 4, rng=random.Random(2))
        self.assertEqual(len(chosen), 4)
        self.assertEqual({m["id"] for m in chosen[:2]}, {1, 5})

    def test_blocked_meals_never_returned(self):
        rng = random.Random(5)
        for _ in range(200):
            chosen = select_meals(MEALS, ["dinner"], 3, blocked_ids={2}, exclude_ids={3}, rng=rng)
            self.assertFalse({m["id"] for m in chosen} & {2, 3})

    def test_random_meal_pools_respect_exclusions_and_stay_unique(self):
        rng = random.Random(17)
        for _ in range(1000):
            pool = rng.sample(MEALS, rng.randint(0, len(MEALS)))
            excluded = {m["id"] for m in MEALS if rng.random() < 0.3}
            blocked = {m["id"] for m in MEALS if rng.random() < 0.2}
            count = rng.randint(1, 5)
            chosen = select_meals(
                pool, ["dinner"], count, exclude_ids=excluded, blocked_ids=blocked, rng=rng, required=False
            )
            ids = [m["id"] for m in chosen]
            self.assertFalse(set(ids) & (excluded | blocked))
            self.assertEqual(len(ids), len(set(ids)))
            self.assertLessEqual(len(ids), count)

    def test_nothing_left_raises(self):
        with self.assertRaises(NoCandidatesAvailable):
            select_meals(MEALS, ["lunch"], 2, blocked_ids={1, 2, 3, 4, 5}, rng=random.Random(0))


if __name__ == "__main__":
    unittest.main()
