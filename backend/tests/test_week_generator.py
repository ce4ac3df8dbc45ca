import unittest
from unittest.mock import MagicMock

from factories import make_context, make_day
from plancache.schemas.planning import PhaseDistribution
from plancache.schemas.week_plan import DayPlan
from plancache.services.llm_service import ModelCallError
from plancache.services.week_generator import (
    CHUNKS, calculate_weekly_stats, determine_phase_for_week, generate_week_in_chunks,
)


def chunk_reply(system_prompt, user_prompt):
    # The prompt names the day range it asks for
    for start, end in CHUNKS:
        if f"DAYS {start}-{end} (" in user_prompt:
            return {"days": [make_day(n) for n in range(start, end + 1)]}
    raise AssertionError(f"Unexpected prompt: {user_prompt[:80]}")


class TestWeekGenerator(unittest.TestCase):

    def test_phase_for_week(self):
        phases = PhaseDistribution(base=4, build=5, peak=2, taper=1)
        self.assertEqual(determine_phase_for_week(1, phases), "base")
        self.assertEqual(determine_phase_for_week(4, phases), "base")
        self.assertEqual(determine_phase_for_week(5, phases), "build")
        self.assertEqual(determine_phase_for_week(11, phases), "peak")
        self.assertEqual(determine_phase_for_week(12, phases), "taper")
        self.assertEqual(determine_phase_for_week(13, phases), "recovery")

    def test_generates_full_week_in_four_chunks(self):
        call_model = MagicMock(side_effect=chunk_reply)
        sleep = MagicMock()

        week = generate_week_in_chunks(make_context(), 1, call_model=call_model, sleep=sleep)

        self.assertEqual(call_model.call_count, 4)
        self.assertEqual(sleep.call_count, 3)
        self.assertEqual(len(week.days), 7)
        self.assertEqual(week.phase, "base")
        self.assertEqual(week.start_date, "2026-01-05")
        self.assertEqual(week.end_date, "2026-01-11")
        self.assertEqual(week.weekly_stats.training_days, 4)
        self.assertEqual(week.weekly_stats.rest_days, 3)

    def test_partial_chunk_fails(self):
        call_model = MagicMock(return_value={"partial": True, "days": []})
        with self.assertRaises(ModelCallError):
            generate_week_in_chunks(make_context(), 1, call_model=call_model, sleep=MagicMock())

    def test_missing_days_fail(self):
        call_model = MagicMock(return_value={"days": [make_day(1)]})
        with self.assertRaises(ModelCallError):
            generate_week_in_chunks(make_context(), 1, call_model=call_model, sleep=MagicMock())

    def test_malformed_day_fails(self):
        call_model = MagicMock(return_value={"days": [{"date": "2026-01-05"}]})
        with self.assertRaises(ModelCallError):
            generate_week_in_chunks(make_context(), 1, call_model=call_model, sleep=MagicMock())

    def test_weekly_stats(self):
        days = [DayPlan.model_validate(make_day(n)) for n in range(1, 8)]
        stats = calculate_weekly_stats(days)

        self.assertEqual(stats.total_calories, 2500 * 7)
        self.assertEqual(stats.avg_daily_calories, 2500)
        self.assertEqual(stats.total_protein, 150 * 7)
        self.assertEqual(stats.total_training_minutes, 240)
        self.assertEqual(stats.avg_intensity, "moderate")

    def test_empty_stats(self):
        stats = calculate_weekly_stats([])
        self.assertEqual(stats.avg_daily_calories, 0)
        self.assertEqual(stats.avg_intensity, "moderate")


if __name__ == '__main__':
    unittest.main()
