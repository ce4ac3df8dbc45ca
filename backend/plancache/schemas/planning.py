from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional

Gender = Literal["male", "female", "other"]
PrimaryGoal = Literal["cut", "bulk", "maintain", "recomp", "performance"]
ActivityLevel = Literal["sedentary", "light", "moderate", "active"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
Phase = Literal["base", "build", "peak", "taper", "recovery"]


class ContextModel(BaseModel):
    """Frozen base: a planning context is never mutated once built."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Meta(ContextModel):
    user_id: str
    created_at: str
    version: str = "1.0"
    locale: str = "es"


class StartPreferences(ContextModel):
    start_date: str
    week_starts_on: str = "monday"


class Biometrics(ContextModel):
    age: float
    gender: Gender
    weight: float  # kg
    height: float  # cm
    body_fat_percentage: Optional[float] = None


class Objective(ContextModel):
    primary_goal: PrimaryGoal
    target_timeline: int  # weeks
    has_competition: bool = False
    competition_type: Optional[str] = None
    target_date: Optional[str] = None
    motivation: Optional[str] = None


class Activity(ContextModel):
    country: str = ""
    timezone: str = "UTC"
    daily_activity_level: ActivityLevel
    daily_steps: Optional[str] = None
    available_days: List[str] = Field(default_factory=list)
    preferred_times: List[str] = Field(default_factory=list)


class Training(ContextModel):
    experience_level: ExperienceLevel
    sport_type: str
    sport_subtype: Optional[str] = None
    days_per_week: int
    session_duration: int  # minutes
    training_location: List[str] = Field(default_factory=list)
    available_equipment: List[str] = Field(default_factory=list)
    has_injuries: bool = False
    injury_details: Optional[str] = None


class Nutrition(ContextModel):
    diet_type: str
    meals_per_day: int
    allergies: List[str] = Field(default_factory=list)
    intolerances: List[str] = Field(default_factory=list)
    excluded_foods: List[str] = Field(default_factory=list)
    cooking_frequency: Optional[str] = None


class CalorieTargets(ContextModel):
    training_day: float
    rest_day: float


class MacroTargets(ContextModel):
    protein: float
    carbs: float
    fat: float
    fiber: Optional[float] = None


class Targets(ContextModel):
    calories: CalorieTargets
    macros: MacroTargets


class PhaseDistribution(ContextModel):
    base: int = 0
    build: int = 0
    peak: int = 0
    taper: int = 0
    recovery: int = 0


class PlanningBlocks(ContextModel):
    block_size: int
    total_blocks: int
    phases: PhaseDistribution


class PlanningTargets(ContextModel):
    """Output of the target calculator: nutrition targets plus block planning."""
    calories: CalorieTargets
    macros: MacroTargets
    planning: PlanningBlocks


class UserPlanningContext(ContextModel):
    meta: Meta
    start_preferences: StartPreferences
    biometrics: Biometrics
    objective: Objective
    activity: Activity
    training: Training
    nutrition: Nutrition
    targets: Targets
    planning: Optional[PlanningBlocks] = None


# Raw onboarding answers, as submitted by the client
class OnboardingBiometrics(BaseModel):
    age: float
    gender: Gender
    weight: float
    height: float
    body_fat_percentage: Optional[float] = None


class OnboardingObjective(BaseModel):
    goal_type: PrimaryGoal
    target_timeline: int
    has_competition: Optional[bool] = False
    competition_type: Optional[str] = None
    target_date: Optional[str] = None
    motivation: Optional[str] = None


class OnboardingActivity(BaseModel):
    country: str = ""
    timezone: str = "UTC"
    activity_level: ActivityLevel
    daily_steps: Optional[str] = None
    available_days: List[str] = []
    preferred_times: List[str] = []


class OnboardingTraining(BaseModel):
    level: ExperienceLevel
    sport_type: str
    sport_subtype: Optional[str] = None
    days_per_week: int
    session_duration: int
    location: List[str] = []
    equipment: List[str] = []
    has_injuries: bool = False
    injury_details: Optional[str] = None


class OnboardingNutrition(BaseModel):
    diet_type: str
    meals_per_day: int
    allergies: List[str] = []
    intolerances: List[str] = []
    excluded_foods: List[str] = []
    cooking_frequency: Optional[str] = None


class OnboardingData(BaseModel):
    start_date: Optional[str] = None
    biometrics: OnboardingBiometrics
    objective: OnboardingObjective
    activity: OnboardingActivity
    training: OnboardingTraining
    nutrition: OnboardingNutrition
