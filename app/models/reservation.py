
import uuid
import enum
from sqlalchemy import Column, DateTime, func, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class ReservationStatus(str, enum.Enum):
    active = "active"
    released = "released"

class Reservation(Base):
    """
    Short-lived soft hold on a court window.

    Liveness is `status == active AND expires_at > now`, evaluated by every
    reader; expired rows are left in place.
    """
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_court_window", "court_id", "start_time", "end_time", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    court_id = Column(UUID(as_uuid=True), ForeignKey("courts.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        SAEnum(ReservationStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReservationStatus.active,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")
    court = relationship("Court")
