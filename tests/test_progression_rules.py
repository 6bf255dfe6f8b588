import unittest

from fitcoach.progression_rules import (
    apply_deload,
    compute_cardio_target,
    compute_progression_target,
    compute_progression_targets,
    detect_fatigue,
    format_targets_for_prompt,
    last_completed_set,
    parse_rep_range,
    round_to_increment,
    target_reps_for_range,
)


def make_set(set_number, weight, reps, rpe=None, completed=True, planned_reps=None):
    return {
        "set_number": set_number,
        "planned_weight": weight,
        "planned_reps": planned_reps if planned_reps is not None else reps,
        "actual_weight": weight if completed else None,
        "actual_reps": reps if completed else None,
        "actual_rpe": rpe,
        "completed": completed,
    }


def make_session(session_date, name, sets):
    return {"date": session_date, "exercises": [{"name": name, "sets": sets}]}


class ProgressionTargetTests(unittest.TestCase):
    def test_no_history_starts_at_default_weight(self):
        target = compute_progression_target([], "Bench Press", 6)
        self.assertEqual(target, {"next_weight": 50.0, "target_reps": 6})

    def test_reached_target_at_moderate_rpe_adds_three_percent(self):
        history = [make_session("2026-03-02", "Bench Press", [make_set(1, 60, 10, rpe=8)])]
        target = compute_progression_target(history, "bench press", 10)
        # 60 * 1.03 = 61.8 -> nearest 2.5
        self.assertEqual(target["next_weight"], 62.5)
        self.assertEqual(target["target_reps"], 10)

    def test_low_rpe_success_adds_five_percent(self):
        history = [make_session("2026-03-02", "Squat", [make_set(1, 100, 5, rpe=6)])]
        self.assertEqual(compute_progression_target(history, "Squat", 5)["next_weight"], 105.0)

    def test_missed_reps_hold_the_weight(self):
        history = [make_session("2026-03-02", "Squat", [make_set(1, 100, 7, rpe=8)])]
        target = compute_progression_target(history, "Squat", 10)
        self.assertEqual(target["next_weight"], 100)

    def test_grinding_near_miss_holds_weight(self):
        history = [make_session("2026-03-02", "Squat", [make_set(1, 100, 9, rpe=9.5)])]
        self.assertEqual(compute_progression_target(history, "Squat", 10)["next_weight"], 100.0)

    def test_last_completed_set_uses_highest_completed_set_number(self):
        session = make_session(
            "2026-03-02",
            "Bench Press",
            [
                make_set(1, 60, 10),
                make_set(2, 65, 8),
                make_set(3, 70, 6, completed=False),
            ],
        )
        entry = last_completed_set(session, "BENCH PRESS")
        self.assertEqual(entry["set_number"], 2)

    def test_targets_use_most_recent_session_from_oldest_first_history(self):
        recent = [
            make_session("2026-03-01", "Bench Press", [make_set(1, 40, 6, rpe=8)]),
            make_session("2026-03-04", "Bench Press", [make_set(1, 80, 6, rpe=8)]),
        ]
        targets = compute_progression_targets(
            recent,
            [{"name": "Bench Press", "is_compound": True}, {"name": "Cable Fly", "is_compound": False}],
            {"compound": "4-6", "accessory": "8-10"},
        )
        # 80 * 1.03 = 82.4 -> 82.5
        self.assertEqual(targets["Bench Press"], {"next_weight": 82.5, "target_reps": 6})
        self.assertEqual(targets["Cable Fly"], {"next_weight": 50.0, "target_reps": 10})

    def test_round_to_increment_rounds_half_up(self):
        self.assertEqual(round_to_increment(61.25), 62.5)
        self.assertEqual(round_to_increment(61.2), 60.0)

    def test_rep_range_parsing(self):
        self.assertEqual(parse_rep_range("8-10"), (8, 10))
        self.assertEqual(parse_rep_range("12"), (12, 12))
        self.assertIsNone(parse_rep_range("N/A"))
        self.assertEqual(target_reps_for_range("4-6"), 6)
        self.assertEqual(target_reps_for_range("N/A"), 10)

    def test_deload_scales_weight_and_adds_reps(self):
        self.assertEqual(
            apply_deload({"next_weight": 100.0, "target_reps": 5}),
            {"next_weight": 90.0, "target_reps": 7},
        )

    def test_prompt_lines_show_exact_numbers(self):
        text = format_targets_for_prompt({"Bench Press": {"next_weight": 52.5, "target_reps": 6}})
        self.assertIn("Bench Press: weight 52.5 x 6 reps", text)


class CardioTargetTests(unittest.TestCase):
    def test_last_distance_grows_five_percent(self):
        sets = [dict(make_set(1, 0, 1), actual_distance=4.0)]
        target = compute_cardio_target([make_session("2026-03-02", "Running", sets)], "running")
        self.assertEqual(target, {"next_weight": 0.0, "target_reps": 1, "distance": 4.2})

    def test_distance_goal_without_history_starts_at_half(self):
        goal = {"value": 10, "target": {"exercise": "running", "metric": "distance"}}
        self.assertEqual(compute_cardio_target([], "Running", goal)["distance"], 5.0)

    def test_no_history_no_distance_goal(self):
        self.assertEqual(compute_cardio_target([], "Rowing")["distance"], 1.0)


class FatigueDetectionTests(unittest.TestCase):
    def _session(self, session_date, failed, total, high_rpe=0):
        sets = []
        for i in range(total):
            reps = 6 if i < failed else 8
            rpe = 9.5 if i < high_rpe else 7
            sets.append(make_set(i + 1, 50, reps, rpe=rpe, planned_reps=8))
        return make_session(session_date, "Squat", sets)

    def test_failed_reps_threshold_is_inclusive(self):
        result = detect_fatigue([self._session("2026-03-10", failed=3, total=10)], "2026-03-15")
        self.assertAlmostEqual(result["failed_reps_ratio"], 0.3)
        self.assertTrue(result["should_deload"])
        self.assertEqual(result["sets_considered"], 10)

    def test_high_rpe_share_triggers_deload(self):
        result = detect_fatigue([self._session("2026-03-10", failed=0, total=5, high_rpe=2)], "2026-03-15")
        self.assertAlmostEqual(result["high_rpe_ratio"], 0.4)
        self.assertTrue(result["should_deload"])

    def test_below_thresholds_no_deload(self):
        result = detect_fatigue([self._session("2026-03-10", failed=2, total=10, high_rpe=3)], "2026-03-15")
        self.assertFalse(result["should_deload"])

    def test_sessions_outside_lookback_are_ignored(self):
        recent = [
            self._session("2026-02-20", failed=10, total=10),
            self._session("2026-03-10", failed=0, total=10),
        ]
        result = detect_fatigue(recent, "2026-03-15", lookback_days=14)
        self.assertEqual(result["sets_considered"], 10)
        self.assertFalse(result["should_deload"])

    def test_incomplete_sets_do_not_count(self):
        session = make_session("2026-03-10", "Squat", [make_set(1, 50, 3, completed=False, planned_reps=8)])
        result = detect_fatigue([session], "2026-03-15")
        self.assertEqual(result["sets_considered"], 0)
        self.assertFalse(result["should_deload"])


if __name__ == "__main__":
    unittest.main()
