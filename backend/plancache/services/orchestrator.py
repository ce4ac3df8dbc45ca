import logging
import time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from plancache.crud.cached_plan import PlanRepository
from plancache.schemas.cache import SavePlanMetadata
from plancache.schemas.generation import (
    Decision, PlanGenerationEvent, PlanGenerationMetadata, PlanGenerationResult, UserTier,
)
from plancache.schemas.planning import UserPlanningContext
from plancache.services.ai_generator import AIBudgetExceededError, AIGenerator
from plancache.services.analytics_logger import AnalyticsLogger
from plancache.services.cache_manager import CacheManager
from plancache.services.cost_optimizer import CostOptimizer
from plancache.services.plan_adapter import PlanAdapter
from plancache.services.similarity_matcher import SimilarityMatcher
from plancache.utils.context_hasher import hash_user_id

logger = logging.getLogger(__name__)

WEEK_PAUSE_SECONDS = 1.0


def _split_reasons(reason: str) -> List[str]:
    return [part.strip() for part in reason.split(",") if part.strip()]


class PlanOrchestrator:
    """
    Entry point of plan generation:
    exact match -> similarity search -> cost decision -> ai / adapt / reuse -> persist -> log.
    """

    def __init__(
        self,
        cache_manager: CacheManager,
        similarity_matcher: SimilarityMatcher,
        cost_optimizer: CostOptimizer,
        plan_adapter: PlanAdapter,
        ai_generator: AIGenerator,
        analytics: AnalyticsLogger,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.cache_manager = cache_manager
        self.similarity_matcher = similarity_matcher
        self.cost_optimizer = cost_optimizer
        self.plan_adapter = plan_adapter
        self.ai_generator = ai_generator
        self.analytics = analytics
        self.sleep = sleep
        self.clock = clock

    def _elapsed_ms(self, start: float) -> int:
        return int((self.clock() - start) * 1000)

    def generate_plan(
        self,
        context: UserPlanningContext,
        week_number: int = 1,
        user_tier: Optional[UserTier] = None
    ) -> PlanGenerationResult:
        start = self.clock()
        user_id = context.meta.user_id

        try:
            logger.info(f"[Orchestrator] Generating week {week_number} for user {hash_user_id(user_id)}")

            # 1. Exact match
            exact_match = self.cache_manager.find_exact_match(context, week_number)
            if exact_match:
                response_time_ms = self._elapsed_ms(start)
                logger.info(f"[Orchestrator] Exact match found ({response_time_ms}ms)")
                self.analytics.log_plan_generation(PlanGenerationEvent(
                    user_id=user_id,
                    decision="cache_exact",
                    decision_reasons=["Exact hash match found"],
                    response_time_ms=response_time_ms,
                    estimated_cost_usd=0,
                    actual_cost_usd=0,
                ))
                return PlanGenerationResult(
                    plan=exact_match,
                    source="cache_exact",
                    metadata=PlanGenerationMetadata(cost_usd=0, response_time_ms=response_time_ms),
                )

            # 2. Similar plans
            matches = self.similarity_matcher.find_similar(context, 5, week_number)
            logger.info(f"[Orchestrator] {len(matches)} similar plans")

            # 3. Decision
            decision = self.cost_optimizer.should_use_ai(context, matches, user_tier)
            logger.info(f"[Orchestrator] Decision: {decision.strategy} ({decision.reason})")

            # 4. Strategy
            if decision.strategy == "ai":
                return self._generate_with_ai(context, week_number, start, decision)

            if decision.strategy == "cache_adapted":
                best_match = matches[0] if matches else None
                if best_match is None:
                    logger.warning("[Orchestrator] No match to adapt, falling back to AI")
                    return self._generate_with_ai_fallback(context, week_number, start, decision)

                if not self.similarity_matcher.is_adaptable(best_match.differences, best_match.score):
                    logger.warning(f"[Orchestrator] Match {best_match.plan_id} is not adaptable, falling back to AI")
                    return self._generate_with_ai_fallback(context, week_number, start, decision)

                adapted = self.plan_adapter.adapt_plan(best_match.plan, best_match.original_context, context)
                if adapted is None:
                    logger.warning("[Orchestrator] Adaptation rejected, falling back to AI")
                    return self._generate_with_ai_fallback(context, week_number, start, decision)

                plan_id = self.cache_manager.save_plan(
                    adapted.plan,
                    context,
                    SavePlanMetadata(source="adapted", original_plan_id=best_match.plan_id),
                )
                response_time_ms = self._elapsed_ms(start)
                logger.info(f"[Orchestrator] Adapted plan {plan_id} (confidence {adapted.confidence_score:.2f})")

                self.analytics.log_plan_generation(PlanGenerationEvent(
                    user_id=user_id,
                    decision="cache_adapted",
                    cached_plan_id=best_match.plan_id,
                    similarity_score=best_match.score,
                    decision_reasons=_split_reasons(decision.reason) + [a.description for a in adapted.adaptations],
                    response_time_ms=response_time_ms,
                    estimated_cost_usd=0,
                    actual_cost_usd=0,
                ))
                return PlanGenerationResult(
                    plan=adapted.plan,
                    source="cache_adapted",
                    metadata=PlanGenerationMetadata(
                        plan_id=plan_id,
                        similarity_score=best_match.score,
                        cost_usd=0,
                        response_time_ms=response_time_ms,
                        cached_plan_id=best_match.plan_id,
                        adaptations=adapted.adaptations,
                        confidence_score=adapted.confidence_score,
                        decision=decision,
                    ),
                )

            if decision.strategy == "cache_direct":
                best_match = matches[0] if matches else None
                if best_match is None:
                    if not self.cost_optimizer.can_make_ai_call():
                        raise AIBudgetExceededError()
                    logger.warning("[Orchestrator] No cached plan available, falling back to AI")
                    return self._generate_with_ai_fallback(context, week_number, start, decision)

                self.cache_manager.increment_access_count(best_match.plan_id)
                response_time_ms = self._elapsed_ms(start)
                logger.info(f"[Orchestrator] Reusing cached plan {best_match.plan_id} (score {best_match.score:.2f})")

                # Direct reuse is reported in the same bucket as an exact hit
                self.analytics.log_plan_generation(PlanGenerationEvent(
                    user_id=user_id,
                    decision="cache_exact",
                    cached_plan_id=best_match.plan_id,
                    similarity_score=best_match.score,
                    decision_reasons=_split_reasons(decision.reason),
                    response_time_ms=response_time_ms,
                    estimated_cost_usd=0,
                    actual_cost_usd=0,
                ))
                return PlanGenerationResult(
                    plan=best_match.plan,
                    source="cache_exact",
                    metadata=PlanGenerationMetadata(
                        plan_id=best_match.plan_id,
                        similarity_score=best_match.score,
                        cost_usd=0,
                        response_time_ms=response_time_ms,
                        decision=decision,
                    ),
                )

            raise ValueError(f"Unknown strategy: {decision.strategy}")

        except Exception as e:
            logger.error(f"[Orchestrator] Generation failed for week {week_number}: {e}")
            self.analytics.log_plan_generation(PlanGenerationEvent(
                user_id=user_id,
                decision="ai",
                decision_reasons=["Error in orchestrator"],
                response_time_ms=self._elapsed_ms(start),
                estimated_cost_usd=0,
                success=False,
                error_message=str(e),
            ))
            raise

    def _generate_with_ai(
        self,
        context: UserPlanningContext,
        week_number: int,
        start: float,
        decision: Decision,
        reasons: Optional[List[str]] = None
    ) -> PlanGenerationResult:
        ai_result = self.ai_generator.generate_with_retry(context, week_number)
        plan_id = self.cache_manager.save_plan(ai_result.plan, context, SavePlanMetadata(source="ai"))
        response_time_ms = self._elapsed_ms(start)
        logger.info(f"[Orchestrator] AI plan generated and cached: {plan_id}")

        self.analytics.log_plan_generation(PlanGenerationEvent(
            user_id=context.meta.user_id,
            decision="ai",
            cached_plan_id=plan_id,
            decision_reasons=reasons if reasons is not None else _split_reasons(decision.reason),
            response_time_ms=response_time_ms,
            estimated_cost_usd=decision.estimated_cost_usd,
            actual_cost_usd=ai_result.metadata.cost_usd,
        ))
        return PlanGenerationResult(
            plan=ai_result.plan,
            source="ai",
            metadata=PlanGenerationMetadata(
                plan_id=plan_id,
                cost_usd=ai_result.metadata.cost_usd,
                response_time_ms=response_time_ms,
                decision=decision,
            ),
        )

    def _generate_with_ai_fallback(
        self,
        context: UserPlanningContext,
        week_number: int,
        start: float,
        decision: Decision
    ) -> PlanGenerationResult:
        return self._generate_with_ai(
            context, week_number, start, decision,
            reasons=["Fallback to AI after cache strategy failed"],
        )

    def generate_multiple_weeks(
        self,
        context: UserPlanningContext,
        start_week: int,
        end_week: int
    ) -> List[PlanGenerationResult]:
        """Generates weeks one at a time, pausing between them. Stops at the first error."""
        results: List[PlanGenerationResult] = []
        for week in range(start_week, end_week + 1):
            try:
                results.append(self.generate_plan(context, week))
            except Exception as e:
                logger.error(f"[Orchestrator] Error generating week {week}: {e}")
                raise
            if week < end_week:
                self.sleep(WEEK_PAUSE_SECONDS)
        return results


def build_orchestrator(db: Session) -> PlanOrchestrator:
    """Wires the default collaborators around one database session."""
    cache_manager = CacheManager(PlanRepository(db))
    analytics = AnalyticsLogger(db)
    return PlanOrchestrator(
        cache_manager=cache_manager,
        similarity_matcher=SimilarityMatcher(cache_manager),
        cost_optimizer=CostOptimizer(spend_tracker=analytics, cache_stats_provider=cache_manager),
        plan_adapter=PlanAdapter(),
        ai_generator=AIGenerator(),
        analytics=analytics,
    )
