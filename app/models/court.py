
import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, DECIMAL, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from app.db.session import Base

class CourtType(str, enum.Enum):
    indoor = "indoor"
    outdoor = "outdoor"

class CourtStatus(str, enum.Enum):
    active = "active"
    maintenance = "maintenance"
    disabled = "disabled"

# Statuses that take a court out of the bookable pool
UNBOOKABLE_COURT_STATUSES = (CourtStatus.maintenance, CourtStatus.disabled)

class Court(Base):
    __tablename__ = "courts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    type = Column(
        SAEnum(CourtType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    hourly_base_rate = Column(DECIMAL(10, 2), nullable=False)
    status = Column(
        SAEnum(CourtStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CourtStatus.active,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
