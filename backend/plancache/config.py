import os
from datetime import datetime
from typing import Optional

import pytz
from dotenv import load_dotenv

load_dotenv(override=False)

SQLALCHEMY_DATABASE_URL = os.getenv("SQLALCHEMY_DATABASE_URL", "sqlite:///./plancache.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# LLM Selection Configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama").lower()  # Options: ollama, openrouter, openai
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL")  # Optional override
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434")

# Langfuse tracing of model calls, on only when both keys are set
LANGFUSE_ENABLED = bool(os.getenv("LANGFUSE_PUBLIC_KEY") and os.getenv("LANGFUSE_SECRET_KEY"))

# Peak hours are evaluated in this timezone
PEAK_HOURS_TIMEZONE = os.getenv("PEAK_HOURS_TIMEZONE", "UTC")


CACHE_CONFIG = {
    # Candidates scoring below this are dropped
    "SIMILARITY_THRESHOLD_LOW": 0.75,

    # Cost limits
    "DAILY_AI_LIMIT": int(os.getenv("DAILY_AI_LIMIT", "50")),
    "MONTHLY_BUDGET_USD": float(os.getenv("MONTHLY_BUDGET_USD", "500")),
    "COST_PER_GENERATION_USD": 0.08,
    "COST_PER_WEEK_USD": 0.012,

    # Cache strategy
    "CACHE_TTL_DAYS": 90,
    "COMPOUND_KEY_CANDIDATES": 20,

    # Bucketing for the semantic hash
    "AGE_BUCKETS": [18, 26, 36, 46, 56, 100],
    "WEIGHT_BUCKET_SIZE_KG": 5,
    "TIMELINE_BUCKETS": [4, 9, 13, 17],

    # Peak hours (24h, [start, end))
    "PEAK_HOURS": [(12, 14), (20, 22)],

    # Additive penalties for similarity scoring
    "PENALTIES": {
        "DIFFERENT_DIET_TYPE": -0.15,
        "DIFFERENT_DAYS_PER_WEEK": -0.10,
        "DIFFERENT_HAS_COMPETITION": -0.20,
        "CONFLICTING_INTOLERANCES": -0.30,
        "DIFFERENT_GOAL": -0.25,
        "EXPERIENCE_GAP": -0.20,
    },
}

MODEL_CONFIG = {
    "COST_PER_1K_TOKENS": 0.0001,
    "ESTIMATED_TOKENS_PER_CHUNK": 3000,
    "CHUNKS_PER_WEEK": 4,
    "MAX_TOKENS": 8000,
    "TEMPERATURE": 0.7,
    "TIMEOUT_MS": 90000,
    "RETRY_ATTEMPTS": 3,
    "RETRY_DELAY_MS": 2000,
    "CHUNK_PAUSE_SECONDS": 2.0,
}

ADAPTATION_RULES = {
    "NON_ADAPTABLE": {
        "GOAL_TYPE_DIFFERENT": True,       # cut != bulk
        "DIET_TYPE_INCOMPATIBLE": True,    # vegan != omnivore
        "EXPERIENCE_LEVEL_GAP": 2,         # beginner != advanced
        "WEIGHT_DIFFERENCE_KG": 15,
        "TIMELINE_DIFFERENCE_WEEKS": 6,
    },
    "DIET_COMPATIBILITY": {
        "omnivore": ["omnivore", "flexitarian"],
        "vegetarian": ["vegetarian", "flexitarian", "omnivore"],
        "vegan": ["vegan", "vegetarian"],
        "paleo": ["paleo", "omnivore"],
        "keto": ["keto", "low_carb", "omnivore"],
        "mediterranean": ["mediterranean", "omnivore"],
        "flexitarian": ["flexitarian", "omnivore", "vegetarian"],
    },
    "MIN_CONFIDENCE_SCORE": 0.70,
    "MACRO_TOLERANCE": 0.15,
    "MIN_DAILY_CALORIES": 1000,
    "MAX_DAILY_CALORIES": 5000,
}

EXPERIENCE_LEVELS = {"beginner": 0, "intermediate": 1, "advanced": 2}


def is_peak_hour(now: Optional[datetime] = None) -> bool:
    """True when `now` (default: current time in PEAK_HOURS_TIMEZONE) falls in a peak window."""
    if now is None:
        now = datetime.now(pytz.timezone(PEAK_HOURS_TIMEZONE))
    hour = now.hour
    return any(start <= hour < end for start, end in CACHE_CONFIG["PEAK_HOURS"])


def get_age_bucket(age: float) -> int:
    buckets = CACHE_CONFIG["AGE_BUCKETS"]
    for lower, upper in zip(buckets, buckets[1:]):
        if lower <= age < upper:
            return lower
    # Out of range ages fall into the last valid bucket
    return buckets[-2]


def get_weight_bucket(weight: float) -> int:
    size = CACHE_CONFIG["WEIGHT_BUCKET_SIZE_KG"]
    return int(weight // size) * size


def get_timeline_bucket(weeks: float) -> int:
    buckets = CACHE_CONFIG["TIMELINE_BUCKETS"]
    for lower, upper in zip(buckets, buckets[1:]):
        if lower <= weeks < upper:
            return lower
    # Timelines under 4 weeks share the open-ended top bucket
    return buckets[-1]
