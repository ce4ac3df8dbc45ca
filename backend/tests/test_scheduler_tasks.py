import unittest
from unittest.mock import MagicMock, patch

from factories import make_context, make_session, make_week_plan
from plancache.crud.cached_plan import PlanRepository
from plancache.schemas.generation import PlanGenerationMetadata, PlanGenerationResult
from plancache.services.cache_manager import CacheManager
from plancache.tasks import scheduler


class TestSchedulerTasks(unittest.TestCase):

    @patch("plancache.tasks.scheduler.build_orchestrator")
    @patch("plancache.tasks.scheduler.SessionLocal")
    def test_generate_remaining_weeks(self, mock_session_local, mock_build):
        db = MagicMock()
        mock_session_local.return_value = db
        mock_build.return_value.generate_multiple_weeks.return_value = [
            PlanGenerationResult(plan=make_week_plan(week), source="ai", metadata=PlanGenerationMetadata())
            for week in (2, 3)
        ]

        sources = scheduler.generate_remaining_weeks(make_context().model_dump(mode="json"), 2, 3)

        self.assertEqual(sources, ["ai", "ai"])
        context, start_week, end_week = mock_build.return_value.generate_multiple_weeks.call_args[0]
        self.assertEqual(context, make_context())
        self.assertEqual((start_week, end_week), (2, 3))
        db.close.assert_called_once()

    @patch("plancache.tasks.scheduler.build_orchestrator")
    @patch("plancache.tasks.scheduler.SessionLocal")
    def test_generate_remaining_weeks_closes_session_on_error(self, mock_session_local, mock_build):
        db = MagicMock()
        mock_session_local.return_value = db
        mock_build.return_value.generate_multiple_weeks.side_effect = RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            scheduler.generate_remaining_weeks(make_context().model_dump(mode="json"), 2, 3)
        db.close.assert_called_once()

    @patch("plancache.tasks.scheduler.SessionLocal")
    def test_cleanup_cached_plans(self, mock_session_local):
        db = make_session()
        mock_session_local.return_value = db
        CacheManager(PlanRepository(db)).save_plan(make_week_plan(), make_context())

        self.assertEqual(scheduler.cleanup_cached_plans(), 0)

    def test_beat_schedule(self):
        schedule = scheduler.celery_app.conf.beat_schedule
        self.assertEqual(
            schedule["cleanup-cached-plans-daily"]["task"],
            "plancache.tasks.scheduler.cleanup_cached_plans"
        )


if __name__ == '__main__':
    unittest.main()
