from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional

from plancache.schemas.planning import UserPlanningContext
from plancache.schemas.week_plan import WeekPlan

PlanSource = Literal["ai", "adapted"]


class FeatureVectorDebug(BaseModel):
    values: List[float]
    labels: List[str]


class CachedPlanRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    exact_hash: str
    semantic_hash: str
    compound_key: str
    week_number: int = 1
    feature_vector: List[float]
    plan_data: WeekPlan
    context_snapshot: UserPlanningContext
    source: PlanSource
    original_plan_id: Optional[str] = None
    user_id: str
    access_count: int = 0
    created_at: datetime
    last_accessed_at: datetime


class NewCachedPlan(BaseModel):
    """Insert payload for the repository: a record without server-assigned fields."""
    exact_hash: str
    semantic_hash: str
    compound_key: str
    feature_vector: List[float]
    plan_data: WeekPlan
    context_snapshot: UserPlanningContext
    source: PlanSource = "ai"
    original_plan_id: Optional[str] = None
    user_id: str


class SavePlanMetadata(BaseModel):
    source: PlanSource = "ai"
    original_plan_id: Optional[str] = None


class ContextHashes(BaseModel):
    exact_hash: str
    semantic_hash: str
    compound_key: str


class Last30Days(BaseModel):
    total_plans: int
    cache_hit_rate: float


class CacheStats(BaseModel):
    total_plans: int
    unique_archetypes: int
    avg_access_count: float
    count_by_source: Dict[str, int] = Field(default_factory=dict)
    last_30_days: Last30Days


class ContextDifferences(BaseModel):
    age_difference: float
    weight_difference: float
    timeline_difference: float
    goal_different: bool
    diet_different: bool
    level_different: bool
    days_per_week_difference: int
    competition_different: bool
    new_intolerances: List[str] = Field(default_factory=list)
    new_exclusions: List[str] = Field(default_factory=list)


class CachedPlanMatch(BaseModel):
    plan_id: str
    score: float
    plan: WeekPlan
    original_context: UserPlanningContext
    differences: ContextDifferences
