import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from plancache.crud.cached_plan import PlanRepository
from plancache.database import get_db
from plancache.schemas.generation import GeneratePlanRequest, GenerateWeeksRequest, PlanGenerationResult
from plancache.services.ai_generator import (
    AIBudgetExceededError, AIGenerationError, AIRateLimitError, AITimeoutError,
)
from plancache.services.analytics_logger import AnalyticsLogger
from plancache.services.cache_manager import CacheManager
from plancache.services.orchestrator import build_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/planning",
    tags=["Planning"]
)


@router.post("/generate", response_model=PlanGenerationResult)
def generate_plan_endpoint(request: GeneratePlanRequest, db: Session = Depends(get_db)):
    orchestrator = build_orchestrator(db)
    try:
        return orchestrator.generate_plan(request.context, request.week_number, request.user_tier)
    except (AIRateLimitError, AIBudgetExceededError) as e:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))
    except AITimeoutError as e:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
    except AIGenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/generate-weeks", status_code=status.HTTP_202_ACCEPTED)
def generate_weeks_endpoint(request: GenerateWeeksRequest):
    """Queues the remaining weeks of a plan on the worker."""
    if request.end_week < request.start_week:
        raise HTTPException(status_code=400, detail="end_week must be >= start_week")

    from plancache.tasks.scheduler import generate_remaining_weeks

    task = generate_remaining_weeks.delay(
        request.context.model_dump(mode="json"),
        request.start_week,
        request.end_week,
    )
    logger.info(f"[Planning API] Queued weeks {request.start_week}-{request.end_week} as task {task.id}")
    return {"task_id": task.id, "start_week": request.start_week, "end_week": request.end_week}


@router.get("/analytics/cache-stats")
def cache_stats_endpoint(db: Session = Depends(get_db)):
    cache_manager = CacheManager(PlanRepository(db))
    analytics = AnalyticsLogger(db)
    stats = cache_manager.get_cache_stats()
    return {
        "cache": stats.model_dump(mode="json") if stats else None,
        "performance": analytics.get_cache_performance("week").model_dump(),
        "weekly_report": analytics.get_weekly_report().model_dump(mode="json"),
    }


@router.get("/analytics/top-archetypes")
def top_archetypes_endpoint(limit: int = 10, db: Session = Depends(get_db)):
    analytics = AnalyticsLogger(db)
    return [usage.model_dump() for usage in analytics.get_top_archetypes_without_cache(limit)]


@router.get("/health")
def planning_health(db: Session = Depends(get_db)):
    stats = CacheManager(PlanRepository(db)).get_cache_stats()
    return {"status": "healthy" if stats is not None else "degraded", "cached_plans": stats.total_plans if stats else 0}
