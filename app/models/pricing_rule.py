
import uuid
import enum
import threading
from datetime import datetime, timedelta, timezone
from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, JSON, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID, JSONB
from app.db.session import Base

_stamp_lock = threading.Lock()
_last_stamp = None


def _creation_stamp() -> datetime:
    """Current UTC time, strictly later than any stamp this process issued before."""
    global _last_stamp
    with _stamp_lock:
        now = datetime.now(timezone.utc)
        if _last_stamp is not None and now <= _last_stamp:
            now = _last_stamp + timedelta(microseconds=1)
        _last_stamp = now
        return now


class PricingRuleType(str, enum.Enum):
    time_based = "time-based"
    day_based = "day-based"
    court_type = "court-type"
    seasonal = "seasonal"
    custom = "custom"

class PricingRule(Base):
    __tablename__ = "pricing_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    type = Column(
        SAEnum(PricingRuleType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    # Shape depends on `type`; parsed by app.schemas.pricing.parse_conditions
    conditions = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    multiplier = Column(Float, nullable=False, default=1.0)
    priority = Column(Integer, nullable=False, default=0, index=True)
    active = Column(Boolean, default=True, index=True)
    # Set per INSERT, not per transaction: ties in priority are broken by it
    created_at = Column(DateTime(timezone=True), default=_creation_stamp, nullable=False)
