import unittest
from unittest.mock import MagicMock

from factories import make_context, make_session, make_week_plan
from plancache.crud.cached_plan import PlanRepository
from plancache.services.cache_manager import CacheManager
from plancache.services.plan_adapter import PlanAdapter
from plancache.services.similarity_matcher import (
    SimilarityMatcher, calculate_differences, calculate_penalties, is_adaptable,
)


class TestPenaltiesAndDifferences(unittest.TestCase):

    def test_identical_contexts_have_no_penalty(self):
        total, breakdown = calculate_penalties(make_context(), make_context())
        self.assertEqual(total, 0)
        self.assertEqual(breakdown, {})

    def test_penalties_accumulate(self):
        new = make_context(
            nutrition={"diet_type": "vegan", "intolerances": ["gluten"]},
            training={"days_per_week": 5},
            objective={"has_competition": True},
        )
        total, breakdown = calculate_penalties(new, make_context())
        self.assertEqual(set(breakdown), {"diet_type", "days_per_week", "has_competition", "intolerances"})
        self.assertAlmostEqual(total, -0.75)

    def test_experience_gap_penalty_needs_two_levels(self):
        _, one_level = calculate_penalties(
            make_context(training={"experience_level": "advanced"}), make_context()
        )
        _, two_levels = calculate_penalties(
            make_context(training={"experience_level": "advanced"}),
            make_context(training={"experience_level": "beginner"}),
        )
        self.assertNotIn("experience_gap", one_level)
        self.assertIn("experience_gap", two_levels)

    def test_differences(self):
        new = make_context(
            biometrics={"weight": 83.44, "age": 35},
            nutrition={"intolerances": ["lactose", "gluten"], "excluded_foods": ["tuna"]},
            training={"days_per_week": 3},
        )
        cached = make_context(nutrition={"intolerances": ["lactose"]})
        diff = calculate_differences(new, cached)

        self.assertAlmostEqual(diff.weight_difference, 3.44)
        self.assertEqual(diff.age_difference, 5)
        self.assertEqual(diff.days_per_week_difference, -1)
        self.assertEqual(diff.new_intolerances, ["gluten"])
        self.assertEqual(diff.new_exclusions, ["tuna"])
        self.assertFalse(diff.goal_different)

    def test_is_adaptable(self):
        close = calculate_differences(make_context(biometrics={"weight": 84}), make_context())
        self.assertTrue(is_adaptable(close, 0.9))
        self.assertFalse(is_adaptable(close, 0.7))

        far = calculate_differences(make_context(biometrics={"weight": 70}), make_context(biometrics={"weight": 95}))
        self.assertFalse(is_adaptable(far, 0.99))

        other_goal = calculate_differences(make_context(objective={"primary_goal": "cut"}), make_context())
        self.assertFalse(is_adaptable(other_goal, 0.99))


    def test_adaptability_agrees_with_adapter_at_weight_limit(self):
        adapter = PlanAdapter(target_calculator=MagicMock())
        cached = make_context()
        for weight, expected in ((95.0, True), (95.04, False), (64.96, False)):
            new = make_context(biometrics={"weight": weight})
            matcher_says = is_adaptable(calculate_differences(new, cached), 0.99)
            reason, _, _ = adapter._analyze_viability(cached, new)
            self.assertEqual(matcher_says, expected, msg=weight)
            self.assertEqual(reason is None, expected, msg=weight)


class TestSimilarityMatcher(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        self.cache = CacheManager(PlanRepository(self.db))
        self.matcher = SimilarityMatcher(self.cache)

    def tearDown(self):
        self.db.close()

    def test_empty_cache(self):
        self.assertEqual(self.matcher.find_similar(make_context()), [])
        self.assertIsNone(self.matcher.get_best_match(make_context()))

    def test_identical_context_scores_one(self):
        plan_id = self.cache.save_plan(make_week_plan(), make_context(meta={"user_id": "a"}))
        matches = self.matcher.find_similar(make_context(meta={"user_id": "b"}))

        self.assertEqual(len(matches), 1)
        self.assertEqual(matches[0].plan_id, plan_id)
        self.assertAlmostEqual(matches[0].score, 1.0)
        self.assertEqual(matches[0].differences.weight_difference, 0)

    def test_matches_sorted_by_score(self):
        near = self.cache.save_plan(make_week_plan(), make_context(meta={"user_id": "a"}, biometrics={"weight": 81}))
        far = self.cache.save_plan(make_week_plan(), make_context(meta={"user_id": "b"}, biometrics={"weight": 120}))

        matches = self.matcher.find_similar(make_context(meta={"user_id": "c"}))
        self.assertEqual([m.plan_id for m in matches], [near, far])
        self.assertGreater(matches[0].score, matches[1].score)
        self.assertEqual(self.matcher.get_best_match(make_context()).plan_id, near)

    def test_penalties_can_drop_below_threshold(self):
        # Same compound key, but new intolerances and a competition: -0.5
        self.cache.save_plan(make_week_plan(), make_context(meta={"user_id": "a"}))
        new = make_context(
            meta={"user_id": "b"},
            nutrition={"intolerances": ["gluten"]},
            objective={"has_competition": True},
        )
        self.assertEqual(self.matcher.find_similar(new), [])

    def test_week_filter(self):
        self.cache.save_plan(make_week_plan(1), make_context(meta={"user_id": "a"}))
        self.assertEqual(len(self.matcher.find_similar(make_context(), week_number=1)), 1)
        self.assertEqual(self.matcher.find_similar(make_context(), week_number=2), [])

    def test_stale_feature_vectors_are_skipped(self):
        candidate = MagicMock()
        candidate.id = "stale"
        candidate.feature_vector = [0.5] * 31
        cache = MagicMock()
        cache.find_by_compound_key.return_value = [candidate]

        self.assertEqual(SimilarityMatcher(cache).find_similar(make_context()), [])

    def test_lookup_failure_returns_empty(self):
        cache = MagicMock()
        cache.find_by_compound_key.side_effect = RuntimeError("boom")
        self.assertEqual(SimilarityMatcher(cache).find_similar(make_context()), [])


if __name__ == '__main__':
    unittest.main()
