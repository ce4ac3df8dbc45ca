import logging
import math
from datetime import datetime, timezone
from typing import Optional

from plancache.schemas.planning import (
    Activity, Biometrics, CalorieTargets, MacroTargets, Meta, Nutrition, Objective,
    OnboardingData, PhaseDistribution, PlanningBlocks, PlanningTargets,
    StartPreferences, Targets, Training, UserPlanningContext,
)

logger = logging.getLogger(__name__)

"""
Nutrition Service
-----------------
Target calculation for planning contexts.
This module is pure business logic and does not depend on the Database or Models directly.
"""

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
}

GOAL_ADJUSTMENTS = {
    "cut": 0.8,           # -20%
    "bulk": 1.15,         # +15%
    "maintain": 1.0,
    "recomp": 0.95,       # -5%
    "performance": 1.05,  # +5%
}

BLOCK_SIZES = {
    "beginner": 4,
    "intermediate": 4,
    "advanced": 3,
}


def calculate_bmr(biometrics: Biometrics) -> float:
    """Mifflin-St Jeor. 'other' uses the female constant."""
    base = (10 * biometrics.weight) + (6.25 * biometrics.height) - (5 * biometrics.age)
    if biometrics.gender == "male":
        return base + 5
    return base - 161


def calculate_macros(weight: float, calories: float) -> MacroTargets:
    """
    Macro split for a given calorie level:
    protein 2.1 g/kg, fat 27% of calories, carbs the remainder, fiber 14 g per 1000 kcal.
    """
    protein = round(weight * 2.1)
    fat_calories = calories * 0.27
    fat = round(fat_calories / 9)
    carb_calories = calories - (protein * 4) - fat_calories
    carbs = round(carb_calories / 4)
    fiber = round((calories / 1000) * 14)
    return MacroTargets(protein=protein, carbs=carbs, fat=fat, fiber=fiber)


def calculate_planning_blocks(timeline: int, experience_level: str) -> PlanningBlocks:
    block_size = BLOCK_SIZES.get(experience_level, 4)
    total_blocks = math.ceil(timeline / block_size)

    if timeline <= 4:
        phases = PhaseDistribution(base=timeline)
    elif timeline <= 8:
        phases = PhaseDistribution(base=4, build=timeline - 4)
    elif timeline <= 12:
        phases = PhaseDistribution(base=4, build=5, peak=2, taper=1)
    else:
        build = math.floor(timeline * 0.5)
        peak = math.floor(timeline * 0.2)
        phases = PhaseDistribution(
            base=4,
            build=build,
            peak=peak,
            taper=1,
            recovery=timeline - 4 - build - peak - 1,
        )

    return PlanningBlocks(block_size=block_size, total_blocks=total_blocks, phases=phases)


def calculate_targets_and_planning(
    biometrics: Biometrics,
    objective: Objective,
    activity: Activity,
    training: Training
) -> PlanningTargets:
    """
    Calorie, macro and block targets for one user.

    Algorithm:
    1. BMR (Mifflin-St Jeor)
    2. TDEE (Activity Multiplier)
    3. Goal Adjustment
    4. Training day +10%, rest day -5%
    5. Macros from the training-day calories
    """
    bmr = calculate_bmr(biometrics)
    tdee = round(bmr * ACTIVITY_MULTIPLIERS.get(activity.daily_activity_level, 1.2))
    adjusted = round(tdee * GOAL_ADJUSTMENTS.get(objective.primary_goal, 1.0))

    training_day = round(adjusted * 1.1)
    rest_day = round(adjusted * 0.95)

    logger.info(
        f"[Nutrition Service] {biometrics.weight}kg, {objective.primary_goal}: "
        f"TDEE {tdee}, training day {training_day}, rest day {rest_day}"
    )

    return PlanningTargets(
        calories=CalorieTargets(training_day=training_day, rest_day=rest_day),
        macros=calculate_macros(biometrics.weight, training_day),
        planning=calculate_planning_blocks(objective.target_timeline, training.experience_level),
    )


def build_user_planning_context(
    onboarding: OnboardingData,
    user_id: str,
    locale: str = "es",
    created_at: Optional[datetime] = None
) -> UserPlanningContext:
    """Builds the frozen planning context from raw onboarding answers."""
    if not onboarding.start_date:
        raise ValueError("start_date is required in onboarding data")

    created_at = created_at or datetime.now(timezone.utc)

    biometrics = Biometrics(
        age=onboarding.biometrics.age,
        gender=onboarding.biometrics.gender,
        weight=onboarding.biometrics.weight,
        height=onboarding.biometrics.height,
        body_fat_percentage=onboarding.biometrics.body_fat_percentage,
    )
    objective = Objective(
        primary_goal=onboarding.objective.goal_type,
        target_timeline=onboarding.objective.target_timeline,
        has_competition=bool(onboarding.objective.has_competition),
        competition_type=onboarding.objective.competition_type,
        target_date=onboarding.objective.target_date,
        motivation=onboarding.objective.motivation,
    )
    activity = Activity(
        country=onboarding.activity.country,
        timezone=onboarding.activity.timezone,
        daily_activity_level=onboarding.activity.activity_level,
        daily_steps=onboarding.activity.daily_steps,
        available_days=onboarding.activity.available_days,
        preferred_times=onboarding.activity.preferred_times,
    )
    training = Training(
        experience_level=onboarding.training.level,
        sport_type=onboarding.training.sport_type,
        sport_subtype=onboarding.training.sport_subtype,
        days_per_week=onboarding.training.days_per_week,
        session_duration=onboarding.training.session_duration,
        training_location=onboarding.training.location,
        available_equipment=onboarding.training.equipment,
        has_injuries=onboarding.training.has_injuries,
        injury_details=onboarding.training.injury_details,
    )
    nutrition = Nutrition(
        diet_type=onboarding.nutrition.diet_type,
        meals_per_day=onboarding.nutrition.meals_per_day,
        allergies=onboarding.nutrition.allergies,
        intolerances=onboarding.nutrition.intolerances,
        excluded_foods=onboarding.nutrition.excluded_foods,
        cooking_frequency=onboarding.nutrition.cooking_frequency,
    )

    calculations = calculate_targets_and_planning(biometrics, objective, activity, training)

    return UserPlanningContext(
        meta=Meta(user_id=user_id, created_at=created_at.isoformat(), version="1.0", locale=locale),
        start_preferences=StartPreferences(start_date=onboarding.start_date, week_starts_on="monday"),
        biometrics=biometrics,
        objective=objective,
        activity=activity,
        training=training,
        nutrition=nutrition,
        targets=Targets(calories=calculations.calories, macros=calculations.macros),
        planning=calculations.planning,
    )
