"""
Feature Extractor
-----------------
Maps a UserPlanningContext to a fixed 28-dimension vector with every value in [0, 1].

Layout (index ranges):
    0-3    physical   (age, weight, height, gender)
    4-10   objective  (goal one-hot x5, timeline, competition)
    11-18  training   (level one-hot x3, days, session, activity, injuries, equipment)
    19-25  nutrition  (meals, diet one-hot x5, restrictions)
    26-27  targets    (training-day calories, protein)
"""
from typing import List

from plancache.schemas.cache import FeatureVectorDebug
from plancache.schemas.planning import UserPlanningContext

GOALS = ["cut", "bulk", "maintain", "recomp", "performance"]
LEVELS = ["beginner", "intermediate", "advanced"]
DIETS = ["omnivore", "vegetarian", "vegan", "paleo", "keto"]

GENDER_ENCODING = {"male": 1.0, "female": 0.0, "other": 0.5}
ACTIVITY_ENCODING = {"sedentary": 0.25, "light": 0.5, "moderate": 0.75, "active": 1.0}

# (segment size, weight) in vector order
SEGMENTS = [
    (4, 1.0),   # physical
    (7, 2.0),   # objective
    (8, 1.5),   # training
    (7, 0.8),   # nutrition
    (2, 1.0),   # targets
]

FEATURE_LABELS = [
    "age", "weight", "height", "gender",
    "goal_cut", "goal_bulk", "goal_maintain", "goal_recomp", "goal_performance",
    "timeline", "has_competition",
    "level_beginner", "level_intermediate", "level_advanced",
    "days_per_week", "session_duration", "activity_level",
    "has_injuries", "equipment_count",
    "meals_per_day",
    "diet_omnivore", "diet_vegetarian", "diet_vegan", "diet_paleo", "diet_keto",
    "restrictions_count",
    "calories_training", "protein_target",
]

FEATURE_DIMENSIONS = len(FEATURE_LABELS)


def _clamp(value: float) -> float:
    return max(0.0, min(float(value), 1.0))


def _one_hot(value: str, options: List[str]) -> List[float]:
    return [1.0 if value == option else 0.0 for option in options]


def extract_features(context: UserPlanningContext) -> List[float]:
    bio = context.biometrics
    objective = context.objective
    training = context.training
    nutrition = context.nutrition

    features: List[float] = []

    # Physical
    features.append(bio.age / 100)
    features.append(bio.weight / 150)
    features.append(bio.height / 200)
    features.append(GENDER_ENCODING.get(bio.gender, 0.5))

    # Objective
    features.extend(_one_hot(objective.primary_goal, GOALS))
    features.append(objective.target_timeline / 16)
    features.append(1.0 if objective.has_competition else 0.0)

    # Training
    features.extend(_one_hot(training.experience_level, LEVELS))
    features.append(training.days_per_week / 7)
    features.append(training.session_duration / 120)
    features.append(ACTIVITY_ENCODING.get(context.activity.daily_activity_level, 0.5))
    features.append(1.0 if training.has_injuries else 0.0)
    features.append(len(training.available_equipment) / 10)

    # Nutrition
    features.append(nutrition.meals_per_day / 6)
    features.extend(_one_hot(nutrition.diet_type, DIETS))
    restrictions = (
        len(nutrition.allergies)
        + len(nutrition.intolerances)
        + len(nutrition.excluded_foods)
    )
    features.append(restrictions / 10)

    # Targets
    features.append(context.targets.calories.training_day / 3000)
    features.append(context.targets.macros.protein / 250)

    return [_clamp(value) for value in features]


def extract_feature_vector(context: UserPlanningContext) -> FeatureVectorDebug:
    """Features paired with their labels, for debugging and analytics."""
    return FeatureVectorDebug(values=extract_features(context), labels=list(FEATURE_LABELS))


def get_feature_weights() -> List[float]:
    weights: List[float] = []
    for size, weight in SEGMENTS:
        weights.extend([weight] * size)
    return weights
