import logging
from typing import Dict, List, Optional, Tuple

from plancache.config import CACHE_CONFIG
from plancache.schemas.cache import CachedPlanMatch, ContextDifferences
from plancache.schemas.planning import UserPlanningContext
from plancache.services.cache_manager import CacheManager
from plancache.utils.adaptation_rules import exceeds_hard_limits, experience_gap
from plancache.utils.feature_extractor import extract_features, get_feature_weights
from plancache.utils.vectorizer import DimensionMismatchError, weighted_cosine_similarity

logger = logging.getLogger(__name__)


def calculate_penalties(
    new_context: UserPlanningContext,
    cached_context: UserPlanningContext
) -> Tuple[float, Dict[str, float]]:
    """
    Additive score adjustments for categorical mismatches.
    Returns (total, breakdown by rule).
    """
    penalties = CACHE_CONFIG["PENALTIES"]
    breakdown: Dict[str, float] = {}

    if new_context.nutrition.diet_type != cached_context.nutrition.diet_type:
        breakdown["diet_type"] = penalties["DIFFERENT_DIET_TYPE"]

    if new_context.training.days_per_week != cached_context.training.days_per_week:
        breakdown["days_per_week"] = penalties["DIFFERENT_DAYS_PER_WEEK"]

    if new_context.objective.has_competition != cached_context.objective.has_competition:
        breakdown["has_competition"] = penalties["DIFFERENT_HAS_COMPETITION"]

    cached_intolerances = set(cached_context.nutrition.intolerances)
    if any(i not in cached_intolerances for i in new_context.nutrition.intolerances):
        breakdown["intolerances"] = penalties["CONFLICTING_INTOLERANCES"]

    if new_context.objective.primary_goal != cached_context.objective.primary_goal:
        breakdown["goal"] = penalties["DIFFERENT_GOAL"]

    if experience_gap(new_context.training.experience_level, cached_context.training.experience_level) > 1:
        breakdown["experience_gap"] = penalties["EXPERIENCE_GAP"]

    return sum(breakdown.values()), breakdown


def calculate_differences(
    new_context: UserPlanningContext,
    cached_context: UserPlanningContext
) -> ContextDifferences:
    cached_intolerances = set(cached_context.nutrition.intolerances)
    cached_excluded = set(cached_context.nutrition.excluded_foods)

    return ContextDifferences(
        age_difference=abs(new_context.biometrics.age - cached_context.biometrics.age),
        weight_difference=abs(new_context.biometrics.weight - cached_context.biometrics.weight),
        timeline_difference=abs(new_context.objective.target_timeline - cached_context.objective.target_timeline),
        goal_different=new_context.objective.primary_goal != cached_context.objective.primary_goal,
        diet_different=new_context.nutrition.diet_type != cached_context.nutrition.diet_type,
        level_different=new_context.training.experience_level != cached_context.training.experience_level,
        days_per_week_difference=new_context.training.days_per_week - cached_context.training.days_per_week,
        competition_different=new_context.objective.has_competition != cached_context.objective.has_competition,
        new_intolerances=[i for i in new_context.nutrition.intolerances if i not in cached_intolerances],
        new_exclusions=[f for f in new_context.nutrition.excluded_foods if f not in cached_excluded],
    )


def is_adaptable(differences: ContextDifferences, score: float) -> bool:
    if exceeds_hard_limits(
        differences.goal_different,
        differences.weight_difference,
        differences.timeline_difference
    ):
        return False
    return score >= CACHE_CONFIG["SIMILARITY_THRESHOLD_LOW"]


class SimilarityMatcher:
    """Ranks cached plans against a new context: compound-key prefilter, weighted cosine, penalties."""

    def __init__(self, cache_manager: CacheManager):
        self.cache_manager = cache_manager

    def find_similar(
        self,
        context: UserPlanningContext,
        limit: int = 5,
        week_number: Optional[int] = None
    ) -> List[CachedPlanMatch]:
        try:
            candidates = self.cache_manager.find_by_compound_key(
                context, CACHE_CONFIG["COMPOUND_KEY_CANDIDATES"], week_number
            )
            if not candidates:
                logger.info("[SimilarityMatcher] No candidates after compound key prefilter")
                return []

            logger.info(f"[SimilarityMatcher] Prefilter returned {len(candidates)} candidates")

            new_vector = extract_features(context)
            weights = get_feature_weights()

            matches: List[CachedPlanMatch] = []
            for candidate in candidates:
                try:
                    score = weighted_cosine_similarity(new_vector, candidate.feature_vector, weights)
                except DimensionMismatchError:
                    logger.warning(f"[SimilarityMatcher] Skipping {candidate.id}: stale feature vector")
                    continue
                penalty, _ = calculate_penalties(context, candidate.context_snapshot)
                score = max(0.0, min(1.0, score + penalty))

                if score < CACHE_CONFIG["SIMILARITY_THRESHOLD_LOW"]:
                    continue

                matches.append(CachedPlanMatch(
                    plan_id=candidate.id,
                    score=score,
                    plan=candidate.plan_data,
                    original_context=candidate.context_snapshot,
                    differences=calculate_differences(context, candidate.context_snapshot),
                ))

            matches.sort(key=lambda m: m.score, reverse=True)
            top = matches[:limit]

            logger.info(
                f"[SimilarityMatcher] {len(top)} matches "
                f"(scores: {', '.join(f'{m.score:.2f}' for m in top)})"
            )
            return top
        except Exception as e:
            logger.error(f"[SimilarityMatcher] Similarity search failed: {e}")
            return []

    def get_best_match(self, context: UserPlanningContext, week_number: Optional[int] = None) -> Optional[CachedPlanMatch]:
        matches = self.find_similar(context, limit=1, week_number=week_number)
        return matches[0] if matches else None

    # Module-level rules exposed on the matcher for callers holding an instance
    calculate_penalties = staticmethod(calculate_penalties)
    calculate_differences = staticmethod(calculate_differences)
    is_adaptable = staticmethod(is_adaptable)
