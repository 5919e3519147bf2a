
import uuid
import enum
from sqlalchemy import (
    Column, String, DateTime, func, DECIMAL, Integer, Float, ForeignKey, Text, JSON, Index,
    Enum as SAEnum,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.db.session import Base

class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"

# Statuses that occupy a court / coach / equipment window
ACTIVE_BOOKING_STATUSES = (BookingStatus.confirmed, BookingStatus.pending)

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_court_window", "court_id", "start_time", "end_time", "status"),
        Index("ix_bookings_coach_window", "coach_id", "start_time", "end_time", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    court_id = Column(UUID(as_uuid=True), ForeignKey("courts.id"), nullable=False)
    coach_id = Column(UUID(as_uuid=True), ForeignKey("coaches.id"), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)  # exclusive
    duration_hours = Column(Float, nullable=False)

    # Pricing snapshot, frozen at booking / reschedule time
    court_fee = Column(DECIMAL(10, 2), nullable=False)
    equipment_fee = Column(DECIMAL(10, 2), nullable=False, default=0)
    coach_fee = Column(DECIMAL(10, 2), nullable=False, default=0)
    base_total = Column(DECIMAL(10, 2), nullable=False)
    applied_rules = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    final_total = Column(DECIMAL(10, 2), nullable=False)

    status = Column(
        SAEnum(BookingStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BookingStatus.confirmed,
        index=True,
    )
    version = Column(Integer, nullable=False)
    phone = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Every UPDATE is issued as "... WHERE version = <loaded version>"; 0 on insert
    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": lambda v: 0 if v is None else v + 1,
    }

    # Relationships
    user = relationship("User")
    court = relationship("Court")
    coach = relationship("Coach")
    equipment = relationship("BookingEquipment", back_populates="booking", cascade="all, delete-orphan")

class BookingEquipment(Base):
    __tablename__ = "booking_equipment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False, index=True)
    equipment_id = Column(UUID(as_uuid=True), ForeignKey("equipment.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="equipment")
    item = relationship("Equipment")
