from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from plancache.database import Base
from plancache.models.cached_plan import JSONColumn, utcnow


class PlanGenerationLog(Base):
    __tablename__ = "plan_generation_logs"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(String(255), nullable=False, index=True)
    decision = Column(String(20), nullable=False, index=True)  # "ai", "cache_exact", "cache_adapted"
    cached_plan_id = Column(String(36), nullable=True)
    similarity_score = Column(Float, nullable=True)

    decision_reasons = Column(
        JSONColumn,
        nullable=True,
        comment="List of human readable reasons"
    )

    estimated_cost_usd = Column(Float, nullable=False, default=0.0)
    actual_cost_usd = Column(Float, nullable=False, default=0.0)
    response_time_ms = Column(Integer, nullable=False, default=0)

    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
