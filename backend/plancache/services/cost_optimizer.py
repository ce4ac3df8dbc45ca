import logging
from typing import Callable, Dict, List, Optional, Protocol

from plancache.config import CACHE_CONFIG, is_peak_hour
from plancache.schemas.cache import CachedPlanMatch, CacheStats
from plancache.schemas.generation import Decision, UserTier
from plancache.schemas.planning import UserPlanningContext

logger = logging.getLogger(__name__)

"""
Cost Optimizer
--------------
Scored policy deciding between AI generation, adapting a cached plan, or
serving one directly. Two hard spend gates are evaluated first.

Score table:
    premium +30, enterprise +40, first plan +20
    no cache +50, best > 0.95 -40, > 0.85 -20, > 0.75 -10, weaker +30
    competition +15, > 2 intolerances +10, > 5 exclusions +10, advanced +10
    < 100 cached plans +25, < 5 matches +15
    peak hour -15
Thresholds: > 50 ai, (20, 50] adapt (or ai without a usable match), <= 20 cache.
"""


class SpendTracker(Protocol):
    def get_today_ai_calls(self) -> int: ...

    def get_monthly_spend(self) -> float: ...


class CacheStatsProvider(Protocol):
    def get_cache_stats(self) -> Optional[CacheStats]: ...


def build_reason(base_reason: str, total_score: int, breakdown: Dict[str, int]) -> str:
    factors = ", ".join(
        f"{key}:{value:+d}" for key, value in breakdown.items() if value != 0
    )
    return f"{base_reason} (score: {total_score}, factors: {factors})"


def should_adapt_instead_of_generate(match: CachedPlanMatch, adaptation_complexity: float) -> bool:
    if match.score > 0.90 and adaptation_complexity < 0.3:
        return True
    if match.score > 0.80 and adaptation_complexity < 0.5:
        return True
    return False


def calculate_cost_savings(cache_hits: int, ai_calls: int) -> float:
    cost = CACHE_CONFIG["COST_PER_GENERATION_USD"]
    potential_cost = (cache_hits + ai_calls) * cost
    actual_cost = ai_calls * cost
    return potential_cost - actual_cost


class CostOptimizer:
    def __init__(
        self,
        spend_tracker: SpendTracker,
        cache_stats_provider: CacheStatsProvider,
        peak_hour_check: Callable[[], bool] = is_peak_hour
    ):
        self.spend_tracker = spend_tracker
        self.cache_stats_provider = cache_stats_provider
        self.peak_hour_check = peak_hour_check

    def _forced_cache_decision(self, reason: str, matches: List[CachedPlanMatch]) -> Decision:
        logger.warning(f"[CostOptimizer] {reason}, forcing cache")
        return Decision(
            use_ai=False,
            strategy="cache_direct",
            reason=reason,
            estimated_cost_usd=0,
            fallback_strategy="best_match" if matches else "fail",
            scoring_breakdown={},
        )

    def should_use_ai(
        self,
        context: UserPlanningContext,
        matches: List[CachedPlanMatch],
        user_tier: Optional[UserTier] = None
    ) -> Decision:
        user_tier = user_tier or UserTier()

        # 1. Hard gates (override everything)
        if self.spend_tracker.get_today_ai_calls() >= CACHE_CONFIG["DAILY_AI_LIMIT"]:
            return self._forced_cache_decision("Daily AI limit reached", matches)

        if self.spend_tracker.get_monthly_spend() >= CACHE_CONFIG["MONTHLY_BUDGET_USD"]:
            return self._forced_cache_decision("Monthly budget exceeded", matches)

        score = 0
        breakdown: Dict[str, int] = {}

        def add(factor: str, points: int):
            nonlocal score
            score += points
            breakdown[factor] = points

        # 2. User tier
        if user_tier.tier == "premium":
            add("premium_user", 30)
        elif user_tier.tier == "enterprise":
            add("enterprise_user", 40)

        if user_tier.is_first_plan:
            add("first_plan", 20)

        # 3. Match quality
        best_match = matches[0] if matches else None
        if best_match is None:
            add("no_cache", 50)
        elif best_match.score > 0.95:
            add("excellent_cache", -40)
        elif best_match.score > 0.85:
            add("good_cache", -20)
        elif best_match.score > 0.75:
            add("acceptable_cache", -10)
        else:
            add("poor_cache", 30)

        # 4. Context complexity
        if context.objective.has_competition:
            add("has_competition", 15)
        if len(context.nutrition.intolerances) > 2:
            add("multiple_intolerances", 10)
        if len(context.nutrition.excluded_foods) > 5:
            add("many_exclusions", 10)
        if context.training.experience_level == "advanced":
            add("advanced_level", 10)

        # 5. Cache maturity
        stats = self.cache_stats_provider.get_cache_stats()
        total_cached_plans = stats.total_plans if stats else 0
        if total_cached_plans < 100:
            add("cache_cold", 25)
        if len(matches) < 5:
            add("few_matches", 15)

        # 6. Time of day
        if self.peak_hour_check():
            add("peak_hour", -15)

        estimated_cost = CACHE_CONFIG["COST_PER_GENERATION_USD"]

        if score > 50:
            decision = Decision(
                use_ai=True,
                strategy="ai",
                reason=build_reason("High score favors AI generation", score, breakdown),
                estimated_cost_usd=estimated_cost,
                scoring_breakdown=breakdown,
            )
        elif score > 20:
            if best_match and best_match.score > CACHE_CONFIG["SIMILARITY_THRESHOLD_LOW"]:
                decision = Decision(
                    use_ai=False,
                    strategy="cache_adapted",
                    reason=build_reason("Medium score with good cache match - adapt", score, breakdown),
                    estimated_cost_usd=0,
                    scoring_breakdown=breakdown,
                )
            else:
                decision = Decision(
                    use_ai=True,
                    strategy="ai",
                    reason=build_reason("Medium score but no good cache - use AI", score, breakdown),
                    estimated_cost_usd=estimated_cost,
                    scoring_breakdown=breakdown,
                )
        else:
            decision = Decision(
                use_ai=False,
                strategy="cache_direct",
                reason=build_reason("Low score favors cache", score, breakdown),
                estimated_cost_usd=0,
                fallback_strategy="best_match" if best_match else "fail",
                scoring_breakdown=breakdown,
            )

        logger.info(f"[CostOptimizer] {decision.strategy}: {decision.reason}")
        return decision

    def can_make_ai_call(self) -> bool:
        return (
            self.spend_tracker.get_today_ai_calls() < CACHE_CONFIG["DAILY_AI_LIMIT"]
            and self.spend_tracker.get_monthly_spend() < CACHE_CONFIG["MONTHLY_BUDGET_USD"]
        )

    should_adapt_instead_of_generate = staticmethod(should_adapt_instead_of_generate)
    calculate_cost_savings = staticmethod(calculate_cost_savings)
