"""
Thresholds that make a cached plan unusable for a new context.

The similarity matcher and the plan adapter both gate on these, at different
points of the pipeline, so they share one predicate.
"""
from plancache.config import ADAPTATION_RULES, EXPERIENCE_LEVELS


def exceeds_hard_limits(goal_different: bool, weight_difference: float, timeline_difference: float) -> bool:
    rules = ADAPTATION_RULES["NON_ADAPTABLE"]
    if goal_different and rules["GOAL_TYPE_DIFFERENT"]:
        return True
    if abs(weight_difference) > rules["WEIGHT_DIFFERENCE_KG"]:
        return True
    if abs(timeline_difference) > rules["TIMELINE_DIFFERENCE_WEEKS"]:
        return True
    return False


def experience_gap(level_a: str, level_b: str) -> int:
    return abs(EXPERIENCE_LEVELS.get(level_a, 0) - EXPERIENCE_LEVELS.get(level_b, 0))


def is_diet_compatible(original_diet: str, new_diet: str) -> bool:
    compatible = ADAPTATION_RULES["DIET_COMPATIBILITY"].get(original_diet)
    if compatible is None:
        return original_diet == new_diet
    return new_diet in compatible
