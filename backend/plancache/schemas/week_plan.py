from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Union


class PlanModel(BaseModel):
    # Model output arrives in camelCase, internal code uses snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Ingredient(PlanModel):
    name: str
    amount: float
    unit: str
    notes: Optional[str] = None


class MealPlan(PlanModel):
    meal_type: str
    timing: Optional[str] = None
    name: str
    description: Optional[str] = None
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float = 0
    ingredients: List[Ingredient] = []
    instructions: Optional[List[str]] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    difficulty: Optional[str] = None
    tags: Optional[List[str]] = None


class NutritionPlan(PlanModel):
    target_calories: float
    target_protein: float
    target_carbs: float
    target_fat: float
    target_fiber: float = 0
    meals: List[MealPlan] = []
    hydration: Optional[Dict[str, Any]] = None


class Exercise(PlanModel):
    name: str
    category: Optional[str] = None
    muscle_group: Optional[str] = None
    sets: Optional[int] = None
    reps: Optional[Union[int, str]] = None
    rest: Optional[int] = None  # seconds
    tempo: Optional[str] = None
    notes: Optional[str] = None
    video_id: Optional[str] = None


class WorkoutPlan(PlanModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: str
    phase: Optional[str] = None
    focus: Optional[str] = None
    duration: Optional[int] = None
    intensity: Optional[str] = None
    description: Optional[str] = None
    exercises: Optional[List[Exercise]] = None
    warmup: Optional[Dict[str, Any]] = None
    cooldown: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class DayPlan(PlanModel):
    date: str
    day_of_week: str
    day_number: int
    is_training_day: bool
    workout: Optional[WorkoutPlan] = None
    nutrition: NutritionPlan


class WeeklyStats(PlanModel):
    total_calories: float = 0
    avg_daily_calories: float = 0
    total_protein: float = 0
    total_carbs: float = 0
    total_fat: float = 0
    training_days: int = 0
    rest_days: int = 0
    total_training_minutes: int = 0
    avg_intensity: str = "moderate"


class WeekPlan(PlanModel):
    week_number: int
    start_date: str
    end_date: str
    phase: str
    days: List[DayPlan]
    weekly_stats: Optional[WeeklyStats] = None
