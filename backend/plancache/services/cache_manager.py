import logging
from typing import List, Optional

from plancache.config import CACHE_CONFIG
from plancache.crud.cached_plan import PlanRepository
from plancache.schemas.cache import CachedPlanRecord, CacheStats, NewCachedPlan, SavePlanMetadata
from plancache.schemas.planning import UserPlanningContext
from plancache.schemas.week_plan import WeekPlan
from plancache.utils.context_hasher import generate_all_hashes, hash_user_id
from plancache.utils.feature_extractor import extract_features

logger = logging.getLogger(__name__)

"""
Cache Manager
-------------
Read/write facade over the plan repository.
Read paths degrade to a cache miss on storage errors; writes propagate.
"""


class CacheManager:
    def __init__(self, repository: PlanRepository):
        self.repository = repository

    def _rollback(self) -> None:
        try:
            self.repository.rollback()
        except Exception as e:
            logger.error(f"[CacheManager] Rollback failed: {e}")

    def save_plan(
        self,
        plan: WeekPlan,
        context: UserPlanningContext,
        metadata: Optional[SavePlanMetadata] = None
    ) -> str:
        metadata = metadata or SavePlanMetadata()
        hashes = generate_all_hashes(context)

        plan_id = self.repository.insert(NewCachedPlan(
            exact_hash=hashes.exact_hash,
            semantic_hash=hashes.semantic_hash,
            compound_key=hashes.compound_key,
            feature_vector=extract_features(context),
            plan_data=plan,
            context_snapshot=context,
            source=metadata.source,
            original_plan_id=metadata.original_plan_id,
            user_id=context.meta.user_id,
        ))

        logger.info(
            f"[CacheManager] Saved plan {plan_id} (source={metadata.source}, "
            f"key={hashes.compound_key}, user={hash_user_id(context.meta.user_id)})"
        )
        return plan_id

    def find_exact_match(self, context: UserPlanningContext, week_number: Optional[int] = None) -> Optional[WeekPlan]:
        try:
            hashes = generate_all_hashes(context)
            cached = self.repository.find_by_exact_hash(hashes.exact_hash, week_number)
            if not cached:
                return None

            self.repository.increment_access(cached.id)
            logger.info(f"[CacheManager] Exact match {cached.id} (previous access count {cached.access_count})")
            return cached.plan_data
        except Exception as e:
            logger.error(f"[CacheManager] Exact match lookup failed: {e}")
            self._rollback()
            return None

    def find_semantic_matches(self, context: UserPlanningContext, limit: int = 5) -> List[CachedPlanRecord]:
        try:
            hashes = generate_all_hashes(context)
            matches = self.repository.find_by_semantic_hash(hashes.semantic_hash, limit)
            logger.info(f"[CacheManager] {len(matches)} semantic matches")
            return matches
        except Exception as e:
            logger.error(f"[CacheManager] Semantic lookup failed: {e}")
            self._rollback()
            return []

    def find_by_compound_key(
        self,
        context: UserPlanningContext,
        limit: int = 10,
        week_number: Optional[int] = None
    ) -> List[CachedPlanRecord]:
        try:
            hashes = generate_all_hashes(context)
            matches = self.repository.find_by_compound_key(
                hashes.compound_key,
                context.objective.primary_goal,
                limit,
                week_number
            )
            logger.info(f"[CacheManager] {len(matches)} matches for compound key {hashes.compound_key}")
            return matches
        except Exception as e:
            logger.error(f"[CacheManager] Compound key lookup failed: {e}")
            self._rollback()
            return []

    def increment_access_count(self, plan_id: str) -> None:
        try:
            self.repository.increment_access(plan_id)
        except Exception as e:
            logger.error(f"[CacheManager] Failed to increment access count for {plan_id}: {e}")
            self._rollback()

    def get_cache_stats(self) -> Optional[CacheStats]:
        try:
            return self.repository.get_stats()
        except Exception as e:
            logger.error(f"[CacheManager] Failed to compute cache stats: {e}")
            self._rollback()
            return None

    def cleanup_old_plans(self, days: int = CACHE_CONFIG["CACHE_TTL_DAYS"]) -> int:
        try:
            deleted = self.repository.delete_older_than(days)
            logger.info(f"[CacheManager] Cleanup removed {deleted} plans older than {days} days")
            return deleted
        except Exception as e:
            logger.error(f"[CacheManager] Cleanup failed: {e}")
            self._rollback()
            return 0

    def preload_plan(self, plan: WeekPlan, synthetic_context: UserPlanningContext, user_id: str) -> str:
        """Seeds the cache with a plan for a popular archetype, owned by `user_id`."""
        meta = synthetic_context.meta.model_copy(update={"user_id": user_id})
        context = synthetic_context.model_copy(update={"meta": meta})
        return self.save_plan(plan, context, SavePlanMetadata(source="ai"))

    def has_cached_plan(self, context: UserPlanningContext, week_number: Optional[int] = None) -> bool:
        try:
            hashes = generate_all_hashes(context)
            return self.repository.find_by_exact_hash(hashes.exact_hash, week_number) is not None
        except Exception as e:
            logger.error(f"[CacheManager] Cache presence check failed: {e}")
            self._rollback()
            return False
