"""
Context Hasher
--------------
Derives the three cache keys of a planning context:
- exact hash: SHA-256 over the full canonical JSON (perfect replay only)
- semantic hash: SHA-256 over a bucketized subset of fields (archetype)
- compound key: cheap "goal|level|days|diet|timeline" index prefix
"""
import base64
import hashlib
import json
from typing import Any

from plancache.config import get_age_bucket, get_timeline_bucket, get_weight_bucket
from plancache.schemas.cache import ContextHashes
from plancache.schemas.planning import UserPlanningContext


def _canonical_json(data: Any) -> str:
    # sort_keys applies at every nesting level
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def generate_exact_hash(context: UserPlanningContext) -> str:
    return _sha256(_canonical_json(context.model_dump(mode="json")))


def _round_to_quarter_hour(minutes: float) -> int:
    return int(round(minutes / 15) * 15)


def generate_semantic_hash(context: UserPlanningContext) -> str:
    semantic_features = {
        "goal": context.objective.primary_goal,
        "timeline_bucket": get_timeline_bucket(context.objective.target_timeline),
        "has_competition": context.objective.has_competition,
        "level": context.training.experience_level,
        "days_per_week": context.training.days_per_week,
        "session_duration": _round_to_quarter_hour(context.training.session_duration),
        "age_bucket": get_age_bucket(context.biometrics.age),
        "weight_bucket": get_weight_bucket(context.biometrics.weight),
        "gender": context.biometrics.gender,
        "diet_type": context.nutrition.diet_type,
        "meals_per_day": context.nutrition.meals_per_day,
        "sport_type": context.training.sport_type,
    }
    return _sha256(_canonical_json(semantic_features))


def generate_compound_key(context: UserPlanningContext) -> str:
    parts = [
        context.objective.primary_goal,
        context.training.experience_level,
        str(context.training.days_per_week),
        context.nutrition.diet_type,
        str(get_timeline_bucket(context.objective.target_timeline)),
    ]
    return "|".join(parts)


def generate_all_hashes(context: UserPlanningContext) -> ContextHashes:
    return ContextHashes(
        exact_hash=generate_exact_hash(context),
        semantic_hash=generate_semantic_hash(context),
        compound_key=generate_compound_key(context),
    )


def hash_user_id(user_id: str) -> str:
    """Short anonymised id for log lines. Not a security primitive."""
    return base64.b64encode(user_id.encode("utf-8")).decode("ascii")[:16]
