from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from plancache.database import Base

JSONColumn = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CachedPlan(Base):
    __tablename__ = "cached_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Derived keys
    exact_hash = Column(String(64), nullable=False, index=True)
    semantic_hash = Column(String(64), nullable=False, index=True)
    compound_key = Column(String(255), nullable=False, index=True)
    week_number = Column(Integer, nullable=False, default=1, index=True)

    # JSON fields
    feature_vector = Column(
        JSONColumn,
        nullable=False,
        comment="Normalized 28-dim feature vector of the context"
    )
    plan_data = Column(
        JSONColumn,
        nullable=False,
        comment="WeekPlan snapshot"
    )
    context_snapshot = Column(
        JSONColumn,
        nullable=False,
        comment="UserPlanningContext that produced the plan"
    )

    source = Column(String(20), nullable=False, default="ai")  # "ai" or "adapted"
    original_plan_id = Column(String(36), nullable=True)
    user_id = Column(String(255), nullable=False, index=True)

    access_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_accessed_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_cached_plans_compound_access", "compound_key", "access_count"),
    )
