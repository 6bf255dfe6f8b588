import unittest
from datetime import date

from fitcoach.split_templates import get_split_template
from fitcoach.weekly_split import (
    assign_intensities,
    build_sessions_from_priorities,
    build_weekly_sessions,
    calculate_workout_schedule,
    day_index,
    intensity_for_date,
    should_workout_today,
)


class WeeklySessionTests(unittest.TestCase):
    def test_ppl_six_days_spread_across_the_week(self):
        sessions = build_weekly_sessions("PPL")
        self.assertEqual([s["day_name"] for s in sessions][:3], ["Monday", "Tuesday", "Wednesday"])
        self.assertEqual([s["name"] for s in sessions], ["Push", "Pull", "Legs", "Push", "Pull", "Legs"])
        self.assertEqual(
            [s["intensity"] for s in sessions],
            ["heavy", "heavy", "moderate", "moderate", "moderate", "light"],
        )

    def test_days_per_week_override(self):
        sessions = build_weekly_sessions(get_split_template("ppl"), days_per_week=3)
        self.assertEqual([s["day_of_week"] for s in sessions], [0, 2, 4])
        self.assertEqual([s["intensity"] for s in sessions], ["heavy", "moderate", "moderate"])

    def test_unknown_split_type(self):
        with self.assertRaises(ValueError):
            build_weekly_sessions("BRO_SPLIT_9000")

    def test_intensities_cover_every_session(self):
        for n in range(1, 8):
            self.assertEqual(len(assign_intensities(n)), n)

    def test_day_index_starts_monday_and_never_goes_back(self):
        for total in range(1, 8):
            days = [day_index(i, total) for i in range(total)]
            self.assertEqual(days[0], 0)
            self.assertEqual(days, sorted(days))
            self.assertEqual(len(set(days)), total)
            self.assertLessEqual(days[-1], 6)

    def test_intensity_for_date_uses_weekday(self):
        sessions = build_weekly_sessions("PPL", days_per_week=3)
        self.assertEqual(intensity_for_date(sessions, date(2026, 3, 16)), "heavy")
        self.assertIsNone(intensity_for_date(sessions, date(2026, 3, 17)))


class PriorityLayoutTests(unittest.TestCase):
    def test_priorities_interleave_and_secondary_gets_a_slot(self):
        sessions = build_sessions_from_priorities({"chest": 2, "back": 1}, 4, secondary_support=["arms"])
        self.assertEqual([s["name"] for s in sessions], ["Chest", "Back", "Chest", "Secondary Support"])
        self.assertEqual(sessions[-1]["body_parts"], ["arms"])
        self.assertEqual([s["day_of_week"] for s in sessions], [0, 1, 3, 5])

    def test_overflow_folds_into_secondary_support(self):
        sessions = build_sessions_from_priorities({"chest": 2, "back": 2, "legs": 2}, 3)
        self.assertEqual([s["name"] for s in sessions], ["Chest", "Back", "Secondary Support"])
        self.assertEqual(sessions[-1]["body_parts"], ["legs"])

    def test_invalid_days_per_week(self):
        with self.assertRaises(ValueError):
            build_sessions_from_priorities({"chest": 1}, 0)


class ScheduleTests(unittest.TestCase):
    def test_optimal_schedule(self):
        self.assertEqual(calculate_workout_schedule(4), [0, 1, 3, 4])
        self.assertEqual(calculate_workout_schedule("often"), [0, 2, 4])

    def test_scheduled_and_rest_days(self):
        self.assertTrue(should_workout_today(date(2026, 3, 16), 3, []))
        self.assertFalse(should_workout_today(date(2026, 3, 17), 3, []))

    def test_no_back_to_back_below_five_days(self):
        recent = [{"date": "2026-03-17"}]
        self.assertFalse(should_workout_today(date(2026, 3, 18), 3, recent))
        self.assertTrue(should_workout_today(date(2026, 3, 17), 5, [{"date": "2026-03-16"}]))

    def test_weekly_limit_reached(self):
        recent = [{"date": "2026-03-16"}, {"date": "2026-03-18"}, {"date": "2026-03-19"}]
        self.assertFalse(should_workout_today(date(2026, 3, 20), 3, recent))

    def test_custom_days_allow_consecutive_training(self):
        self.assertTrue(should_workout_today(date(2026, 3, 17), None, [{"date": "2026-03-16"}], custom_days=[0, 1]))

    def test_no_frequency_means_every_day(self):
        self.assertTrue(should_workout_today(date(2026, 3, 17), None, []))


if __name__ == "__main__":
    unittest.main()
