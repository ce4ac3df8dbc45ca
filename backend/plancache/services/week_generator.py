import logging
import time
from typing import Callable, Dict, List

from pydantic import ValidationError

from plancache.config import MODEL_CONFIG
from plancache.schemas.planning import PhaseDistribution, UserPlanningContext
from plancache.schemas.week_plan import DayPlan, WeekPlan, WeeklyStats
from plancache.services.llm_service import ModelCallError, call_llm_json
from plancache.services.nutrition_service import calculate_planning_blocks
from plancache.utils.llm_prompts.planning_prompts import WEEK_PLAN_SYSTEM_PROMPT, build_user_prompt_for_week

logger = logging.getLogger(__name__)

# (first day, last day), 1-based
CHUNKS = [(1, 2), (3, 4), (5, 6), (7, 7)]


def determine_phase_for_week(week_number: int, phases: PhaseDistribution) -> str:
    current_week = 0
    for phase in ("base", "build", "peak", "taper"):
        current_week += getattr(phases, phase)
        if week_number <= current_week:
            return phase
    return "recovery"


def _parse_chunk(reply: Dict, start: int, end: int) -> List[DayPlan]:
    if reply.get("partial"):
        raise ModelCallError(f"Partial response for days {start}-{end}")
    try:
        return [DayPlan.model_validate(day) for day in reply.get("days", [])]
    except ValidationError as e:
        raise ModelCallError(f"Malformed days {start}-{end}: {e}") from e


def calculate_weekly_stats(days: List[DayPlan]) -> WeeklyStats:
    total_calories = sum(m.calories for d in days for m in d.nutrition.meals)
    training_days = [d for d in days if d.is_training_day]
    intensities = [d.workout.intensity for d in training_days if d.workout and d.workout.intensity]

    return WeeklyStats(
        total_calories=total_calories,
        avg_daily_calories=round(total_calories / len(days)) if days else 0,
        total_protein=sum(m.protein for d in days for m in d.nutrition.meals),
        total_carbs=sum(m.carbs for d in days for m in d.nutrition.meals),
        total_fat=sum(m.fat for d in days for m in d.nutrition.meals),
        training_days=len(training_days),
        rest_days=len(days) - len(training_days),
        total_training_minutes=sum((d.workout.duration or 0) for d in training_days if d.workout),
        avg_intensity=max(set(intensities), key=intensities.count) if intensities else "moderate",
    )


def generate_week_in_chunks(
    context: UserPlanningContext,
    week_number: int,
    call_model: Callable[[str, str], Dict] = call_llm_json,
    sleep: Callable[[float], None] = time.sleep
) -> WeekPlan:
    """
    Generates one week as four day-chunks (1-2, 3-4, 5-6, 7), pausing between chunks.
    Raises ModelCallError if the model fails or fewer than 7 days come back.
    """
    planning = context.planning or calculate_planning_blocks(
        context.objective.target_timeline, context.training.experience_level
    )
    phase = determine_phase_for_week(week_number, planning.phases)
    logger.info(f"[WeekGenerator] Starting week {week_number} ({phase}) in {len(CHUNKS)} chunks")

    days: List[DayPlan] = []
    for index, (start, end) in enumerate(CHUNKS):
        user_prompt = build_user_prompt_for_week(context, week_number, phase, start, end)
        reply = call_model(WEEK_PLAN_SYSTEM_PROMPT, user_prompt)
        chunk_days = _parse_chunk(reply, start, end)
        logger.info(f"[WeekGenerator] Days {start}-{end}: parsed {len(chunk_days)} days")
        days.extend(chunk_days)

        if index < len(CHUNKS) - 1:
            sleep(MODEL_CONFIG["CHUNK_PAUSE_SECONDS"])

    if len(days) < 7:
        raise ModelCallError(f"Incomplete week: only {len(days)}/7 days generated")
    if len(days) > 7:
        logger.warning(f"[WeekGenerator] Expected 7 days, got {len(days)}")

    week = WeekPlan(
        week_number=week_number,
        start_date=days[0].date,
        end_date=days[-1].date,
        phase=phase,
        days=days,
        weekly_stats=calculate_weekly_stats(days),
    )
    logger.info(f"[WeekGenerator] Week {week_number} completed")
    return week
