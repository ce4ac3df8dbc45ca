import unittest
from unittest.mock import MagicMock

from factories import make_context, make_week_plan
from plancache.services.ai_generator import (
    AIGenerationError, AIGenerator, AIRateLimitError, AITimeoutError, get_estimated_cost,
)
from plancache.services.llm_service import ModelCallError, ModelErrorKind


class TestAIGenerator(unittest.TestCase):
    def setUp(self):
        self.week_generator = MagicMock(side_effect=lambda context, week: make_week_plan(week))
        self.sleep = MagicMock()
        self.generator = AIGenerator(week_generator=self.week_generator, sleep=self.sleep)

    def test_generate_with_ai(self):
        result = self.generator.generate_with_ai(make_context(), 2)

        self.assertEqual(result.plan.week_number, 2)
        self.assertEqual(result.metadata.tokens_used, 12000)
        self.assertAlmostEqual(result.metadata.cost_usd, 0.0012)
        self.assertTrue(result.metadata.chunked)

    def test_rate_limit_is_not_retried(self):
        self.week_generator.side_effect = ModelCallError("429", ModelErrorKind.RATE_LIMIT)

        with self.assertRaises(AIRateLimitError):
            self.generator.generate_with_retry(make_context())
        self.assertEqual(self.week_generator.call_count, 1)
        self.sleep.assert_not_called()

    def test_quota_maps_to_rate_limit(self):
        self.week_generator.side_effect = ModelCallError("insufficient_quota", ModelErrorKind.QUOTA)
        with self.assertRaises(AIRateLimitError) as ctx:
            self.generator.generate_with_ai(make_context())
        self.assertEqual(str(ctx.exception), "API quota exceeded")

    def test_timeout_classification(self):
        self.week_generator.side_effect = ModelCallError("slow", ModelErrorKind.TIMEOUT)
        with self.assertRaises(AITimeoutError):
            self.generator.generate_with_ai(make_context())

    def test_slow_failure_counts_as_timeout(self):
        clock = MagicMock(side_effect=[0.0, 95.0])
        generator = AIGenerator(
            week_generator=MagicMock(side_effect=ModelCallError("bad json")),
            sleep=self.sleep,
            clock=clock,
        )
        with self.assertRaises(AITimeoutError):
            generator.generate_with_ai(make_context())

    def test_retry_with_exponential_backoff(self):
        self.week_generator.side_effect = [
            ModelCallError("bad json"),
            ModelCallError("bad json"),
            make_week_plan(1),
        ]
        result = self.generator.generate_with_retry(make_context())

        self.assertEqual(result.plan.week_number, 1)
        self.assertEqual(self.week_generator.call_count, 3)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [2.0, 4.0])

    def test_retries_exhausted(self):
        self.week_generator.side_effect = ModelCallError("bad json")

        with self.assertRaises(AIGenerationError) as ctx:
            self.generator.generate_with_retry(make_context(), max_retries=3)
        self.assertEqual(self.week_generator.call_count, 3)
        self.assertEqual(self.sleep.call_count, 2)
        self.assertIsInstance(ctx.exception.original_error, ModelCallError)

    def test_estimated_cost(self):
        self.assertAlmostEqual(get_estimated_cost(4), 0.048)
        self.assertAlmostEqual(AIGenerator.get_estimated_cost(1), 0.012)


if __name__ == '__main__':
    unittest.main()
