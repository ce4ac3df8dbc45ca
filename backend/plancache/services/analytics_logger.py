import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from plancache.config import CACHE_CONFIG
from plancache.models.cached_plan import CachedPlan, utcnow
from plancache.models.plan_generation_log import PlanGenerationLog
from plancache.schemas.generation import (
    ArchetypeUsage, CachePerformanceStats, PlanGenerationEvent, WeeklyReport,
)

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}


class AnalyticsLogger:
    """
    Append-only log of generation decisions.
    Doubles as the spend tracker consulted by the cost optimizer.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def log_plan_generation(self, event: PlanGenerationEvent) -> None:
        # Analytics must never break the generation flow
        try:
            self.db.add(PlanGenerationLog(
                user_id=event.user_id,
                decision=event.decision,
                cached_plan_id=event.cached_plan_id,
                similarity_score=event.similarity_score,
                decision_reasons=event.decision_reasons,
                estimated_cost_usd=event.estimated_cost_usd,
                actual_cost_usd=event.actual_cost_usd or event.estimated_cost_usd,
                response_time_ms=event.response_time_ms,
                success=event.success,
                error_message=event.error_message,
                created_at=self.clock(),
            ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"[AnalyticsLogger] Error logging plan generation: {e}")

    def get_today_ai_calls(self) -> int:
        today = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        return (
            self.db.query(func.count(PlanGenerationLog.id))
            .filter(PlanGenerationLog.decision == "ai", PlanGenerationLog.created_at >= today)
            .scalar() or 0
        )

    def get_monthly_spend(self) -> float:
        start_of_month = self.clock().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        total = (
            self.db.query(func.sum(PlanGenerationLog.actual_cost_usd))
            .filter(PlanGenerationLog.created_at >= start_of_month)
            .scalar()
        )
        return float(total or 0.0)

    def _logs_since(self, start: datetime) -> List[PlanGenerationLog]:
        return self.db.query(PlanGenerationLog).filter(PlanGenerationLog.created_at >= start).all()

    def get_cache_performance(self, period: str = "week") -> CachePerformanceStats:
        if period not in PERIOD_DAYS:
            raise ValueError(f"Unknown period: {period}")

        logs = self._logs_since(self.clock() - timedelta(days=PERIOD_DAYS[period]))
        decisions = Counter(log.decision for log in logs)
        total_requests = len(logs)
        total_cost = sum(log.actual_cost_usd or 0 for log in logs)
        # What the same traffic would have cost with AI only
        potential_cost = total_requests * CACHE_CONFIG["COST_PER_GENERATION_USD"]

        return CachePerformanceStats(
            period=period,
            total_requests=total_requests,
            ai_calls=decisions["ai"],
            cache_exact_hits=decisions["cache_exact"],
            cache_adapted_hits=decisions["cache_adapted"],
            avg_response_time=(
                sum(log.response_time_ms for log in logs) / total_requests if total_requests else 0.0
            ),
            total_cost=total_cost,
            cost_savings=potential_cost - total_cost,
        )

    def get_weekly_report(self) -> WeeklyReport:
        end_date = self.clock()
        start_date = end_date - timedelta(days=7)
        logs = [log for log in self._logs_since(start_date) if log.created_at <= end_date]

        total_requests = len(logs)
        if total_requests == 0:
            return WeeklyReport(start_date=start_date, end_date=end_date)

        ai_calls = sum(1 for log in logs if log.decision == "ai")
        successful = sum(1 for log in logs if log.success)
        scores = [log.similarity_score for log in logs if log.similarity_score is not None]
        total_cost = sum(log.actual_cost_usd or 0 for log in logs)
        potential_cost = total_requests * CACHE_CONFIG["COST_PER_GENERATION_USD"]

        return WeeklyReport(
            start_date=start_date,
            end_date=end_date,
            total_requests=total_requests,
            ai_percentage=ai_calls / total_requests * 100,
            cache_hit_rate=(total_requests - ai_calls) / total_requests * 100,
            avg_similarity_score=sum(scores) / len(scores) if scores else 0.0,
            total_cost=total_cost,
            cost_saved=potential_cost - total_cost,
            avg_response_time=sum(log.response_time_ms for log in logs) / total_requests,
            success_rate=successful / total_requests * 100,
        )

    def get_usage_by_hour(self) -> Dict[int, int]:
        """Requests per hour of day (UTC) over the last 7 days."""
        logs = self._logs_since(self.clock() - timedelta(days=7))
        return dict(Counter(log.created_at.hour for log in logs))

    def get_top_archetypes_without_cache(self, limit: int = 10) -> List[ArchetypeUsage]:
        """
        Compound keys that most often needed a fresh AI generation in the last 30 days.
        Candidates for preloading.
        """
        since = self.clock() - timedelta(days=30)
        rows = (
            self.db.query(
                CachedPlan.compound_key,
                func.count(PlanGenerationLog.id).label("ai_calls"),
                func.sum(PlanGenerationLog.actual_cost_usd).label("total_cost"),
            )
            .join(CachedPlan, CachedPlan.id == PlanGenerationLog.cached_plan_id)
            .filter(PlanGenerationLog.decision == "ai", PlanGenerationLog.created_at >= since)
            .group_by(CachedPlan.compound_key)
            .order_by(func.count(PlanGenerationLog.id).desc())
            .limit(limit)
            .all()
        )
        return [
            ArchetypeUsage(compound_key=key, ai_calls=calls, total_cost=float(cost or 0))
            for key, calls, cost in rows
        ]
