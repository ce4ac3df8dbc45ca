from datetime import datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from plancache.schemas.planning import UserPlanningContext
from plancache.schemas.week_plan import WeekPlan

Strategy = Literal["ai", "cache_direct", "cache_adapted"]
GenerationSource = Literal["ai", "cache_exact", "cache_adapted"]


class Decision(BaseModel):
    use_ai: bool
    strategy: Strategy
    reason: str
    estimated_cost_usd: float
    fallback_strategy: Optional[Literal["best_match", "second_best", "fail"]] = None
    scoring_breakdown: Dict[str, int] = Field(default_factory=dict)


class UserTier(BaseModel):
    tier: Literal["free", "premium", "enterprise"] = "free"
    is_first_plan: bool = False


class Adaptation(BaseModel):
    category: Literal["training", "nutrition", "timeline"]
    type: Literal["substitution", "scaling", "removal", "addition"]
    description: str


class AdaptedPlanResult(BaseModel):
    plan: WeekPlan
    adaptations: List[Adaptation]
    confidence_score: float


class AIGenerationMetadata(BaseModel):
    tokens_used: int
    cost_usd: float
    duration_ms: int
    model: str
    chunked: bool = True


class AIGenerationResult(BaseModel):
    plan: WeekPlan
    metadata: AIGenerationMetadata


class PlanGenerationMetadata(BaseModel):
    plan_id: Optional[str] = None
    similarity_score: Optional[float] = None
    cost_usd: float = 0.0
    response_time_ms: int = 0
    cached_plan_id: Optional[str] = None
    adaptations: Optional[List[Adaptation]] = None
    confidence_score: Optional[float] = None
    decision: Optional[Decision] = None


class PlanGenerationResult(BaseModel):
    plan: WeekPlan
    source: GenerationSource
    metadata: PlanGenerationMetadata


class PlanGenerationEvent(BaseModel):
    user_id: str
    decision: GenerationSource
    cached_plan_id: Optional[str] = None
    similarity_score: Optional[float] = None
    decision_reasons: List[str] = Field(default_factory=list)
    estimated_cost_usd: float = 0.0
    actual_cost_usd: float = 0.0
    response_time_ms: int = 0
    success: bool = True
    error_message: Optional[str] = None


class CachePerformanceStats(BaseModel):
    period: Literal["day", "week", "month"]
    total_requests: int
    ai_calls: int
    cache_exact_hits: int
    cache_adapted_hits: int
    avg_response_time: float
    total_cost: float
    cost_savings: float


class WeeklyReport(BaseModel):
    start_date: datetime
    end_date: datetime
    total_requests: int = 0
    ai_percentage: float = 0.0
    cache_hit_rate: float = 0.0
    avg_similarity_score: float = 0.0
    total_cost: float = 0.0
    cost_saved: float = 0.0
    avg_response_time: float = 0.0
    success_rate: float = 0.0


class ArchetypeUsage(BaseModel):
    compound_key: str
    ai_calls: int
    total_cost: float


# API payloads
class GeneratePlanRequest(BaseModel):
    context: UserPlanningContext
    week_number: int = 1
    user_tier: Optional[UserTier] = None


class GenerateWeeksRequest(BaseModel):
    context: UserPlanningContext
    start_week: int = 2
    end_week: int
