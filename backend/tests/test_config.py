import unittest
from datetime import datetime

from plancache.config import get_age_bucket, get_timeline_bucket, get_weight_bucket, is_peak_hour
from plancache.utils.adaptation_rules import exceeds_hard_limits, experience_gap, is_diet_compatible


class TestConfigHelpers(unittest.TestCase):

    def test_peak_hours(self):
        self.assertTrue(is_peak_hour(datetime(2026, 1, 5, 12, 0)))
        self.assertTrue(is_peak_hour(datetime(2026, 1, 5, 21, 59)))
        self.assertFalse(is_peak_hour(datetime(2026, 1, 5, 14, 0)))
        self.assertFalse(is_peak_hour(datetime(2026, 1, 5, 3, 0)))

    def test_age_bucket(self):
        self.assertEqual(get_age_bucket(18), 18)
        self.assertEqual(get_age_bucket(30), 26)
        self.assertEqual(get_age_bucket(99), 56)
        self.assertEqual(get_age_bucket(120), 56)
        self.assertEqual(get_age_bucket(15), 56)

    def test_weight_bucket(self):
        self.assertEqual(get_weight_bucket(84.9), 80)
        self.assertEqual(get_weight_bucket(85), 85)

    def test_timeline_bucket(self):
        self.assertEqual(get_timeline_bucket(4), 4)
        self.assertEqual(get_timeline_bucket(12), 9)
        self.assertEqual(get_timeline_bucket(16), 13)
        self.assertEqual(get_timeline_bucket(30), 17)
        self.assertEqual(get_timeline_bucket(2), 17)
        self.assertEqual(get_timeline_bucket(2), get_timeline_bucket(20))


class TestAdaptationRules(unittest.TestCase):

    def test_hard_limits(self):
        self.assertFalse(exceeds_hard_limits(False, 15, 6))
        self.assertTrue(exceeds_hard_limits(False, 15.1, 0))
        self.assertTrue(exceeds_hard_limits(False, 0, -7))
        self.assertTrue(exceeds_hard_limits(True, 0, 0))

    def test_experience_gap(self):
        self.assertEqual(experience_gap("beginner", "advanced"), 2)
        self.assertEqual(experience_gap("advanced", "intermediate"), 1)

    def test_diet_compatibility(self):
        self.assertTrue(is_diet_compatible("vegetarian", "omnivore"))
        self.assertFalse(is_diet_compatible("omnivore", "vegan"))
        self.assertTrue(is_diet_compatible("carnivore", "carnivore"))
        self.assertFalse(is_diet_compatible("carnivore", "omnivore"))


if __name__ == '__main__':
    unittest.main()
