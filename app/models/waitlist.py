
import uuid
import enum
from sqlalchemy import (
    Column, String, DateTime, Date, func, Integer, ForeignKey, Text, JSON, Index,
    Enum as SAEnum,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.db.session import Base

class WaitlistStatus(str, enum.Enum):
    waiting = "waiting"
    notified = "notified"
    converted = "converted"
    expired = "expired"

class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"
    __table_args__ = (
        Index(
            "ix_waitlist_slot_group",
            "court_id", "desired_date", "desired_start_time", "desired_end_time", "status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    court_id = Column(UUID(as_uuid=True), ForeignKey("courts.id"), nullable=False)
    desired_date = Column(Date, nullable=False)
    desired_start_time = Column(String(5), nullable=False)  # "HH:MM", facility wall clock
    desired_end_time = Column(String(5), nullable=False)
    # [{"equipment_id": "<uuid>", "quantity": 2}, ...]
    equipment = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    coach_id = Column(UUID(as_uuid=True), ForeignKey("coaches.id"), nullable=True)
    phone = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    position = Column(Integer, nullable=False)  # 1 = front of the queue
    status = Column(
        SAEnum(WaitlistStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=WaitlistStatus.waiting,
        index=True,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    notified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
    court = relationship("Court")
    coach = relationship("Coach")
