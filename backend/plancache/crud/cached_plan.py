from datetime import timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from plancache.models.cached_plan import CachedPlan, utcnow
from plancache.schemas.cache import CachedPlanRecord, CacheStats, Last30Days, NewCachedPlan

"""
Cached Plan CRUD
----------------
Pure Database Access Object for cached week plans.
JSON columns are (de)serialized here; callers only see pydantic records.
"""


class PlanRepository:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, record: NewCachedPlan) -> str:
        plan = CachedPlan(
            exact_hash=record.exact_hash,
            semantic_hash=record.semantic_hash,
            compound_key=record.compound_key,
            week_number=record.plan_data.week_number,
            feature_vector=list(record.feature_vector),
            plan_data=record.plan_data.model_dump(mode="json"),
            context_snapshot=record.context_snapshot.model_dump(mode="json"),
            source=record.source,
            original_plan_id=record.original_plan_id,
            user_id=record.user_id,
            access_count=0,
        )
        self.db.add(plan)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(plan)
        return plan.id

    def find_by_exact_hash(self, exact_hash: str, week_number: Optional[int] = None) -> Optional[CachedPlanRecord]:
        query = self.db.query(CachedPlan).filter(CachedPlan.exact_hash == exact_hash)
        if week_number is not None:
            query = query.filter(CachedPlan.week_number == week_number)
        plan = query.order_by(CachedPlan.created_at.desc()).first()
        if not plan:
            return None
        return CachedPlanRecord.model_validate(plan)

    def find_by_semantic_hash(self, semantic_hash: str, limit: int = 5) -> List[CachedPlanRecord]:
        plans = (
            self.db.query(CachedPlan)
            .filter(CachedPlan.semantic_hash == semantic_hash)
            .order_by(CachedPlan.access_count.desc())
            .limit(limit)
            .all()
        )
        return [CachedPlanRecord.model_validate(p) for p in plans]

    def find_by_compound_key(
        self,
        compound_key: str,
        goal_type: Optional[str] = None,
        limit: int = 10,
        week_number: Optional[int] = None
    ) -> List[CachedPlanRecord]:
        """
        Candidates sharing a compound key, most accessed first.
        The goal filter runs after the fetch, so twice `limit` rows are read.
        """
        query = self.db.query(CachedPlan).filter(CachedPlan.compound_key == compound_key)
        if week_number is not None:
            query = query.filter(CachedPlan.week_number == week_number)
        plans = query.order_by(CachedPlan.access_count.desc()).limit(limit * 2).all()
        records = [CachedPlanRecord.model_validate(p) for p in plans]

        if goal_type:
            records = [r for r in records if r.context_snapshot.objective.primary_goal == goal_type]

        return records[:limit]

    def increment_access(self, plan_id: str) -> None:
        try:
            # Single UPDATE so concurrent hits never lose an increment
            self.db.query(CachedPlan).filter(CachedPlan.id == plan_id).update(
                {
                    CachedPlan.access_count: CachedPlan.access_count + 1,
                    CachedPlan.last_accessed_at: utcnow(),
                },
                synchronize_session=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def get_stats(self) -> CacheStats:
        thirty_days_ago = utcnow() - timedelta(days=30)

        total_plans = self.db.query(func.count(CachedPlan.id)).scalar() or 0
        unique_archetypes = self.db.query(func.count(func.distinct(CachedPlan.semantic_hash))).scalar() or 0
        avg_access_count = self.db.query(func.avg(CachedPlan.access_count)).scalar() or 0.0

        count_by_source = {"ai": 0, "adapted": 0}
        for source, count in (
            self.db.query(CachedPlan.source, func.count(CachedPlan.id))
            .group_by(CachedPlan.source)
            .all()
        ):
            count_by_source[source] = count

        recent_total = (
            self.db.query(func.count(CachedPlan.id))
            .filter(CachedPlan.created_at >= thirty_days_ago)
            .scalar() or 0
        )
        recent_reused = (
            self.db.query(func.count(CachedPlan.id))
            .filter(CachedPlan.created_at >= thirty_days_ago, CachedPlan.access_count > 1)
            .scalar() or 0
        )

        return CacheStats(
            total_plans=total_plans,
            unique_archetypes=unique_archetypes,
            avg_access_count=float(avg_access_count),
            count_by_source=count_by_source,
            last_30_days=Last30Days(
                total_plans=recent_total,
                cache_hit_rate=recent_reused / recent_total if recent_total else 0.0,
            ),
        )

    def delete_older_than(self, days: int, only_if_never_accessed: bool = True) -> int:
        cutoff = utcnow() - timedelta(days=days)
        query = self.db.query(CachedPlan).filter(CachedPlan.created_at < cutoff)
        if only_if_never_accessed:
            query = query.filter(CachedPlan.access_count == 0)
        try:
            deleted = query.delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted

    def rollback(self) -> None:
        """Discards a failed transaction so the session stays usable."""
        self.db.rollback()

    def find_by_user_id(self, user_id: str) -> List[CachedPlanRecord]:
        plans = (
            self.db.query(CachedPlan)
            .filter(CachedPlan.user_id == user_id)
            .order_by(CachedPlan.created_at.desc())
            .all()
        )
        return [CachedPlanRecord.model_validate(p) for p in plans]
