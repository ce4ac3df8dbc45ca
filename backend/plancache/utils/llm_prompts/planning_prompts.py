from plancache.schemas.planning import UserPlanningContext

WEEK_PLAN_SYSTEM_PROMPT = """You are a training and nutrition planner. You generate days of a weekly plan as pure JSON.

GENERAL RULES:
1. Generate ONLY the requested days.
2. Do NOT use markdown. Reply with a single JSON object.

TRAINING RULES:
1. State the workout type clearly: "strength", "cardio", "hiit", "rest", "active_recovery".
2. For every exercise include name, muscleGroup, sets, reps and rest (seconds).
3. Include 4-6 exercises per session. Rest days use type "rest" with no exercises.

NUTRITION RULES:
1. Every day has at least one meal.
2. Every meal lists all ingredients with amount and unit ("g", "ml", "unit", "cup", "tbsp").
3. The sum of meal calories and macros must match the day's targets within 10%.
4. Respect the diet type, intolerances, allergies and excluded foods.

JSON FORMAT:
{
  "days": [
    {
      "date": "2025-01-06",
      "dayOfWeek": "monday",
      "dayNumber": 1,
      "isTrainingDay": true,
      "workout": {
        "type": "strength",
        "phase": "base",
        "focus": "upper",
        "duration": 60,
        "intensity": "moderate",
        "description": "Upper body strength session",
        "exercises": [
          {"name": "Barbell bench press", "category": "compound", "muscleGroup": "chest", "sets": 4, "reps": 10, "rest": 90}
        ]
      },
      "nutrition": {
        "targetCalories": 2600,
        "targetProtein": 170,
        "targetCarbs": 300,
        "targetFat": 75,
        "targetFiber": 35,
        "meals": [
          {
            "mealType": "breakfast",
            "name": "Oats with whey and banana",
            "calories": 650,
            "protein": 45,
            "carbs": 85,
            "fat": 14,
            "fiber": 9,
            "ingredients": [
              {"name": "Rolled oats", "amount": 80, "unit": "g"}
            ]
          }
        ]
      }
    }
  ]
}"""

WEEK_PLAN_USER_PROMPT = """WEEK {week_number} | PHASE: {phase}
GENERATE ONLY DAYS {start_day}-{end_day} ({day_count} days)
Week starts on: {start_date}

USER PROFILE:
- Age: {age}
- Gender: {gender}
- Weight: {weight} kg
- Experience: {experience_level}
- Goal: {primary_goal}
- Sport: {sport_type}

TRAINING:
- Days per week: {days_per_week}
- Session duration: {session_duration} minutes
- Equipment: {equipment}
- Injuries: {injuries}

NUTRITION:
- Training day calories: {training_day_calories} kcal
- Rest day calories: {rest_day_calories} kcal
- Macros: {protein}g protein / {carbs}g carbs / {fat}g fat
- Diet type: {diet_type}
- Meals per day: {meals_per_day}
- Intolerances: {intolerances}
- Excluded foods: {excluded_foods}

Adapt intensity and volume to week {week_number} of the {phase} phase.
Return JSON following the exact format of the system prompt."""


def build_user_prompt_for_week(
    context: UserPlanningContext,
    week_number: int,
    phase: str,
    start_day: int,
    end_day: int
) -> str:
    training = context.training
    nutrition = context.nutrition
    targets = context.targets

    return WEEK_PLAN_USER_PROMPT.format(
        week_number=week_number,
        phase=phase.upper(),
        start_day=start_day,
        end_day=end_day,
        day_count=end_day - start_day + 1,
        start_date=context.start_preferences.start_date,
        age=context.biometrics.age,
        gender=context.biometrics.gender,
        weight=context.biometrics.weight,
        experience_level=training.experience_level,
        primary_goal=context.objective.primary_goal,
        sport_type=training.sport_type,
        days_per_week=training.days_per_week,
        session_duration=training.session_duration,
        equipment=", ".join(training.available_equipment) or "none",
        injuries=training.injury_details if training.has_injuries else "none",
        training_day_calories=targets.calories.training_day,
        rest_day_calories=targets.calories.rest_day,
        protein=targets.macros.protein,
        carbs=targets.macros.carbs,
        fat=targets.macros.fat,
        diet_type=nutrition.diet_type,
        meals_per_day=nutrition.meals_per_day,
        intolerances=", ".join(nutrition.intolerances) or "none",
        excluded_foods=", ".join(nutrition.excluded_foods) or "none",
    )
