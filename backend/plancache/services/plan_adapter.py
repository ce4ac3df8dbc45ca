import logging
from typing import Callable, List, Optional, Tuple

from plancache.config import ADAPTATION_RULES
from plancache.schemas.generation import Adaptation, AdaptedPlanResult
from plancache.schemas.planning import PlanningTargets, UserPlanningContext
from plancache.schemas.week_plan import WeekPlan
from plancache.services.nutrition_service import calculate_targets_and_planning
from plancache.utils.adaptation_rules import exceeds_hard_limits, experience_gap, is_diet_compatible

logger = logging.getLogger(__name__)

TargetCalculator = Callable[..., PlanningTargets]


def _new_intolerances(original: UserPlanningContext, new: UserPlanningContext) -> List[str]:
    existing = set(original.nutrition.intolerances)
    return [i for i in new.nutrition.intolerances if i not in existing]


def calculate_adaptation_complexity(original: UserPlanningContext, new: UserPlanningContext) -> float:
    """Cheap 0..1 estimate of how much work adapting `original` to `new` would be."""
    complexity = 0.0

    weight_diff = abs(new.biometrics.weight - original.biometrics.weight)
    complexity += min(weight_diff / 50, 0.2)

    if original.nutrition.diet_type != new.nutrition.diet_type:
        complexity += 0.3

    complexity += min(len(_new_intolerances(original, new)) * 0.1, 0.3)

    if original.training.days_per_week != new.training.days_per_week:
        complexity += 0.2

    return min(complexity, 1.0)


def validate_adapted_plan(plan: WeekPlan) -> bool:
    """
    Every day needs at least one meal, a calorie total inside the configured
    range, and macro sums within the tolerance of the day's targets.
    """
    tolerance = ADAPTATION_RULES["MACRO_TOLERANCE"]

    for day in plan.days:
        meals = day.nutrition.meals
        if not meals:
            logger.info(f"[PlanAdapter] Day {day.day_number} has no meals")
            return False

        total_calories = sum(m.calories for m in meals)
        if not ADAPTATION_RULES["MIN_DAILY_CALORIES"] <= total_calories <= ADAPTATION_RULES["MAX_DAILY_CALORIES"]:
            logger.info(f"[PlanAdapter] Day {day.day_number} calories out of range: {total_calories}")
            return False

        for total, target in (
            (sum(m.protein for m in meals), day.nutrition.target_protein),
            (sum(m.carbs for m in meals), day.nutrition.target_carbs),
            (sum(m.fat for m in meals), day.nutrition.target_fat),
        ):
            if target == 0:
                if total != 0:
                    return False
                continue
            if abs(total - target) / target > tolerance:
                logger.info(f"[PlanAdapter] Day {day.day_number} macros off target (>{tolerance:.0%})")
                return False

    return True


class PlanAdapter:
    def __init__(self, target_calculator: TargetCalculator = calculate_targets_and_planning):
        self.target_calculator = target_calculator

    def _analyze_viability(
        self,
        original: UserPlanningContext,
        new: UserPlanningContext
    ) -> Tuple[Optional[str], bool, bool]:
        """Returns (rejection reason or None, needs nutrition, needs training)."""
        rules = ADAPTATION_RULES["NON_ADAPTABLE"]
        weight_diff = abs(new.biometrics.weight - original.biometrics.weight)
        timeline_diff = abs(new.objective.target_timeline - original.objective.target_timeline)
        goal_different = original.objective.primary_goal != new.objective.primary_goal

        if exceeds_hard_limits(goal_different, weight_diff, timeline_diff):
            return (
                f"Outside hard limits (goal differs: {goal_different}, "
                f"weight diff: {weight_diff}kg, timeline diff: {timeline_diff} weeks)",
                False, False,
            )

        original_diet = original.nutrition.diet_type
        new_diet = new.nutrition.diet_type
        if rules["DIET_TYPE_INCOMPATIBLE"] and not is_diet_compatible(original_diet, new_diet):
            return f"Incompatible diets: {original_diet} -> {new_diet}", False, False

        level_gap = experience_gap(original.training.experience_level, new.training.experience_level)
        if level_gap >= rules["EXPERIENCE_LEVEL_GAP"]:
            return f"Experience level gap too large: {level_gap}", False, False

        needs_nutrition = (
            weight_diff > 2
            or original_diet != new_diet
            or bool(_new_intolerances(original, new))
        )
        needs_training = (
            original.training.days_per_week != new.training.days_per_week
            or level_gap > 0
        )
        return None, needs_nutrition, needs_training

    def _adapt_nutrition(
        self,
        plan: WeekPlan,
        original: UserPlanningContext,
        new: UserPlanningContext
    ) -> Tuple[List[Adaptation], float]:
        adaptations: List[Adaptation] = []
        confidence = 1.0

        new_targets = self.target_calculator(new.biometrics, new.objective, new.activity, new.training)

        old_training_calories = original.targets.calories.training_day
        new_training_calories = new_targets.calories.training_day
        calorie_ratio = new_training_calories / old_training_calories

        for day in plan.days:
            for meal in day.nutrition.meals:
                meal.calories = round(meal.calories * calorie_ratio)
                meal.protein = round(meal.protein * calorie_ratio)
                meal.carbs = round(meal.carbs * calorie_ratio)
                meal.fat = round(meal.fat * calorie_ratio)
                meal.fiber = round(meal.fiber * calorie_ratio)
                for ingredient in meal.ingredients:
                    ingredient.amount = round(ingredient.amount * calorie_ratio, 1)

            day.nutrition.target_calories = (
                new_targets.calories.training_day if day.is_training_day else new_targets.calories.rest_day
            )
            day.nutrition.target_protein = new_targets.macros.protein
            day.nutrition.target_carbs = new_targets.macros.carbs
            day.nutrition.target_fat = new_targets.macros.fat
            day.nutrition.target_fiber = new_targets.macros.fiber or 30

        adaptations.append(Adaptation(
            category="nutrition",
            type="scaling",
            description=(
                f"Scaled calories from {old_training_calories} to {new_training_calories} kcal "
                f"(ratio: {calorie_ratio:.2f})"
            ),
        ))

        # Ingredients are not swapped here, only flagged
        added = _new_intolerances(original, new)
        if added:
            adaptations.append(Adaptation(
                category="nutrition",
                type="substitution",
                description=f"Added {len(added)} new intolerances: {', '.join(added)}",
            ))
            confidence *= 1 - len(added) * 0.1

        return adaptations, max(0.5, confidence)

    def _adapt_training(
        self,
        original: UserPlanningContext,
        new: UserPlanningContext
    ) -> Tuple[List[Adaptation], float]:
        adaptations: List[Adaptation] = []
        confidence = 1.0

        old_days = original.training.days_per_week
        new_days = new.training.days_per_week

        if old_days != new_days:
            adaptations.append(Adaptation(
                category="training",
                type="scaling",
                description=f"Adjusted training days from {old_days} to {new_days} days/week",
            ))
            if new_days < old_days:
                confidence *= 0.85
            else:
                confidence *= 0.80

        return adaptations, confidence

    def adapt_plan(
        self,
        cached_plan: WeekPlan,
        original_context: UserPlanningContext,
        new_context: UserPlanningContext
    ) -> Optional[AdaptedPlanResult]:
        """
        Adapts a cached week to a new context.
        Returns None when the pair is not adaptable, the result fails validation,
        or confidence drops below the configured minimum.
        """
        reason, needs_nutrition, needs_training = self._analyze_viability(original_context, new_context)
        if reason:
            logger.info(f"[PlanAdapter] Plan not adaptable: {reason}")
            return None

        if needs_nutrition and not original_context.targets.calories.training_day:
            logger.info("[PlanAdapter] Original context has no training day calories to scale from")
            return None

        adapted_plan = cached_plan.model_copy(deep=True)
        adaptations: List[Adaptation] = []
        confidence_score = 1.0

        if needs_nutrition:
            changes, confidence = self._adapt_nutrition(adapted_plan, original_context, new_context)
            adaptations.extend(changes)
            confidence_score *= confidence

        if needs_training:
            changes, confidence = self._adapt_training(original_context, new_context)
            adaptations.extend(changes)
            confidence_score *= confidence

        if not validate_adapted_plan(adapted_plan):
            logger.info("[PlanAdapter] Adapted plan failed validation")
            return None

        if confidence_score < ADAPTATION_RULES["MIN_CONFIDENCE_SCORE"]:
            logger.info(f"[PlanAdapter] Confidence too low: {confidence_score:.2f}")
            return None

        logger.info(
            f"[PlanAdapter] Adapted plan (confidence: {confidence_score:.2f}, "
            f"{len(adaptations)} adaptations)"
        )
        return AdaptedPlanResult(plan=adapted_plan, adaptations=adaptations, confidence_score=confidence_score)

    calculate_adaptation_complexity = staticmethod(calculate_adaptation_complexity)
