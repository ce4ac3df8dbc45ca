import unittest
from datetime import datetime, timezone

from pydantic import ValidationError

from plancache.schemas.planning import Activity, Biometrics, Objective, OnboardingData, Training
from plancache.services.nutrition_service import (
    build_user_planning_context, calculate_bmr, calculate_macros, calculate_planning_blocks,
    calculate_targets_and_planning,
)

ONBOARDING = {
    "start_date": "2026-01-05",
    "biometrics": {"age": 30, "gender": "male", "weight": 80, "height": 180},
    "objective": {"goal_type": "bulk", "target_timeline": 12},
    "activity": {"activity_level": "moderate", "timezone": "Europe/Madrid"},
    "training": {"level": "intermediate", "sport_type": "gym", "days_per_week": 4, "session_duration": 60,
                 "equipment": ["barbell"]},
    "nutrition": {"diet_type": "omnivore", "meals_per_day": 4, "intolerances": ["lactose"]},
}


class TestNutritionService(unittest.TestCase):

    def test_bmr(self):
        male = Biometrics(age=30, gender="male", weight=80, height=180)
        female = Biometrics(age=30, gender="female", weight=80, height=180)
        self.assertEqual(calculate_bmr(male), 1780)
        self.assertEqual(calculate_bmr(female), 1614)

    def test_macros(self):
        macros = calculate_macros(80, 3000)
        self.assertEqual(macros.protein, 168)
        self.assertEqual(macros.fat, 90)
        self.assertEqual(macros.carbs, 380)
        self.assertEqual(macros.fiber, 42)

    def test_planning_blocks(self):
        short = calculate_planning_blocks(3, "beginner")
        self.assertEqual(short.phases.base, 3)
        self.assertEqual(short.total_blocks, 1)

        medium = calculate_planning_blocks(7, "intermediate")
        self.assertEqual((medium.phases.base, medium.phases.build), (4, 3))

        standard = calculate_planning_blocks(12, "intermediate")
        self.assertEqual(
            (standard.phases.base, standard.phases.build, standard.phases.peak, standard.phases.taper),
            (4, 5, 2, 1)
        )

        long = calculate_planning_blocks(20, "advanced")
        self.assertEqual(long.block_size, 3)
        self.assertEqual(long.total_blocks, 7)
        phases = long.phases
        self.assertEqual(phases.base + phases.build + phases.peak + phases.taper + phases.recovery, 20)

    def test_targets(self):
        targets = calculate_targets_and_planning(
            Biometrics(age=30, gender="male", weight=80, height=180),
            Objective(primary_goal="bulk", target_timeline=12),
            Activity(daily_activity_level="moderate"),
            Training(experience_level="intermediate", sport_type="gym", days_per_week=4, session_duration=60),
        )
        # BMR 1780 * 1.55 = 2759, * 1.15 = 3173
        self.assertEqual(targets.calories.training_day, round(3173 * 1.1))
        self.assertEqual(targets.calories.rest_day, round(3173 * 0.95))
        self.assertEqual(targets.macros.protein, 168)
        self.assertEqual(targets.planning.phases.peak, 2)

    def test_build_context(self):
        created = datetime(2026, 1, 1, tzinfo=timezone.utc)
        context = build_user_planning_context(
            OnboardingData.model_validate(ONBOARDING), "user-9", created_at=created
        )

        self.assertEqual(context.meta.user_id, "user-9")
        self.assertEqual(context.meta.created_at, created.isoformat())
        self.assertEqual(context.objective.primary_goal, "bulk")
        self.assertEqual(context.training.experience_level, "intermediate")
        self.assertEqual(context.training.available_equipment, ["barbell"])
        self.assertEqual(context.activity.daily_activity_level, "moderate")
        self.assertEqual(context.nutrition.intolerances, ["lactose"])
        self.assertGreater(context.targets.calories.training_day, context.targets.calories.rest_day)
        self.assertIsNotNone(context.planning)

    def test_context_requires_start_date(self):
        data = dict(ONBOARDING, start_date=None)
        with self.assertRaises(ValueError):
            build_user_planning_context(OnboardingData.model_validate(data), "user-9")

    def test_context_is_frozen(self):
        context = build_user_planning_context(OnboardingData.model_validate(ONBOARDING), "user-9")
        with self.assertRaises(ValidationError):
            context.biometrics.weight = 90


if __name__ == '__main__':
    unittest.main()
