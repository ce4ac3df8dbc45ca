import logging

from sqlalchemy.orm import Session

from plancache.celery_app import celery_app
from plancache.config import CACHE_CONFIG
from plancache.crud.cached_plan import PlanRepository
from plancache.database import SessionLocal
from plancache.schemas.planning import UserPlanningContext
from plancache.services.cache_manager import CacheManager
from plancache.services.orchestrator import build_orchestrator

logger = logging.getLogger(__name__)


# --- WORKER TASK ---
@celery_app.task
def generate_remaining_weeks(context_data: dict, start_week: int, end_week: int):
    """
    Worker task: generates weeks start_week..end_week in the background
    once the first week has been returned to the user.
    """
    context = UserPlanningContext.model_validate(context_data)
    db: Session = SessionLocal()
    try:
        logger.info(f"Generating weeks {start_week}-{end_week} in background")
        results = build_orchestrator(db).generate_multiple_weeks(context, start_week, end_week)
        sources = [result.source for result in results]
        logger.info(f"Background generation finished: {sources}")
        return sources
    except Exception as e:
        logger.error(f"Error generating weeks {start_week}-{end_week}: {e}")
        raise
    finally:
        db.close()


# --- BEAT TASK ---
@celery_app.task
def cleanup_cached_plans(days: int = CACHE_CONFIG["CACHE_TTL_DAYS"]):
    """Beat task: drops cached plans older than the TTL that were never reused."""
    db: Session = SessionLocal()
    try:
        deleted = CacheManager(PlanRepository(db)).cleanup_old_plans(days)
        logger.info(f"Cache cleanup ran. Deleted {deleted} plans.")
        return deleted
    finally:
        db.close()
