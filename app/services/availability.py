"""
Availability checker.

A court, coach or equipment item is free for [start, end) when no occupying
claim overlaps it (half-open: existing.start < end AND existing.end > start):

- court: confirmed/pending bookings, plus live reservations of other users
- coach: confirmed/pending bookings
- equipment: total quantity minus the quantities claimed by overlapping
  confirmed/pending bookings

Checks short-circuit in that order and report the first failure's reason.
The result is only valid at the instant it is computed; writers re-run it
after locking the resources (see app.services.locking).
"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func as sqlfunc
from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingEquipment, ACTIVE_BOOKING_STATUSES
from app.models.court import Court, CourtStatus, UNBOOKABLE_COURT_STATUSES
from app.models.coach import Coach
from app.models.equipment import Equipment
from app.models.reservation import Reservation, ReservationStatus
from app.schemas.availability import AvailabilityResult, CourtSlot, EquipmentItem
from app.services.exceptions import BookingValidationError, NotFoundError
from app.utils.timeslots import day_slots, ensure_utc, utcnow

logger = logging.getLogger(__name__)


def _validate_window(start: datetime, end: datetime):
    start, end = ensure_utc(start), ensure_utc(end)
    if end <= start:
        raise BookingValidationError("End time must be after start time", field="end_time")
    return start, end


def _overlapping_bookings(db: Session, start: datetime, end: datetime, exclude_booking_id: Optional[UUID]):
    query = db.query(Booking).filter(
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)
    return query


def live_reservations(db: Session, court_id: UUID, start: datetime, end: datetime, now: Optional[datetime] = None):
    """Active, unexpired reservations on a court overlapping [start, end)."""
    now = now or utcnow()
    return db.query(Reservation).filter(
        Reservation.court_id == court_id,
        Reservation.status == ReservationStatus.active,
        Reservation.expires_at > now,
        Reservation.start_time < end,
        Reservation.end_time > start,
    )


def check_court_availability(
    db: Session,
    court_id: UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[UUID] = None,
    exclude_user_id: Optional[UUID] = None,
) -> Optional[str]:
    """Returns None when the court is free, otherwise the reason it is not."""
    start, end = _validate_window(start, end)

    court = db.query(Court).filter(Court.id == court_id).first()
    if not court:
        raise NotFoundError("Court", court_id)
    if court.status in UNBOOKABLE_COURT_STATUSES:
        return f"Court not bookable (status: {CourtStatus(court.status).value})"

    conflict = (
        _overlapping_bookings(db, start, end, exclude_booking_id)
        .filter(Booking.court_id == court_id)
        .first()
    )
    if conflict:
        return "Court is not available for the selected time slot"

    holds = live_reservations(db, court_id, start, end)
    if exclude_user_id:
        holds = holds.filter(Reservation.user_id != exclude_user_id)
    if holds.first():
        return "Court is temporarily held by another user for the selected time slot"

    return None


def check_coach_availability(
    db: Session,
    coach_id: Optional[UUID],
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[UUID] = None,
) -> Optional[str]:
    """Returns None when the coach is free (or not requested), otherwise the reason."""
    if not coach_id:
        return None
    start, end = _validate_window(start, end)

    if not db.query(Coach.id).filter(Coach.id == coach_id).first():
        raise NotFoundError("Coach", coach_id)

    conflict = (
        _overlapping_bookings(db, start, end, exclude_booking_id)
        .filter(Booking.coach_id == coach_id)
        .first()
    )
    if conflict:
        return "Coach is not available for the selected time slot"
    return None


def booked_quantity(
    db: Session,
    equipment_id: UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[UUID] = None,
) -> int:
    """Units of an equipment item claimed by bookings overlapping [start, end)."""
    query = (
        db.query(sqlfunc.sum(BookingEquipment.quantity))
        .join(Booking, Booking.id == BookingEquipment.booking_id)
        .filter(
            BookingEquipment.equipment_id == equipment_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_time < end,
            Booking.end_time > start,
        )
    )
    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)
    return int(query.scalar() or 0)


def merge_equipment_items(equipment_items: Iterable[EquipmentItem]) -> List[EquipmentItem]:
    """Collapse repeated equipment ids into one line each, summing quantities."""
    merged = {}
    for item in equipment_items:
        if item.equipment_id in merged:
            merged[item.equipment_id] += item.quantity
        else:
            merged[item.equipment_id] = item.quantity
    return [EquipmentItem(equipment_id=eid, quantity=qty) for eid, qty in merged.items()]


def check_equipment_availability(
    db: Session,
    equipment_items: Iterable[EquipmentItem],
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[UUID] = None,
) -> Optional[str]:
    """Returns None when every requested quantity fits, otherwise the first shortfall."""
    items = merge_equipment_items(equipment_items or [])
    if not items:
        return None
    start, end = _validate_window(start, end)

    for item in items:
        equipment = db.query(Equipment).filter(Equipment.id == item.equipment_id).first()
        if not equipment:
            raise NotFoundError("Equipment", item.equipment_id)

        remaining = equipment.total_quantity - booked_quantity(
            db, equipment.id, start, end, exclude_booking_id
        )
        if remaining < item.quantity:
            return (
                f"Insufficient {equipment.name} available. "
                f"Requested: {item.quantity}, Available: {max(remaining, 0)}"
            )
    return None


def check_availability(
    db: Session,
    court_id: UUID,
    coach_id: Optional[UUID] = None,
    equipment_items: Iterable[EquipmentItem] = (),
    start: datetime = None,
    end: datetime = None,
    exclude_booking_id: Optional[UUID] = None,
    exclude_user_id: Optional[UUID] = None,
) -> AvailabilityResult:
    """Check court, then coach, then equipment; report the first failure."""
    if start is None or end is None:
        raise BookingValidationError("Start and end time are required", field="start_time")
    start, end = _validate_window(start, end)

    reason = check_court_availability(db, court_id, start, end, exclude_booking_id, exclude_user_id)
    if reason is None:
        reason = check_coach_availability(db, coach_id, start, end, exclude_booking_id)
    if reason is None:
        reason = check_equipment_availability(db, equipment_items, start, end, exclude_booking_id)

    if reason:
        logger.debug("Unavailable: court=%s %s-%s: %s", court_id, start, end, reason)
        return AvailabilityResult(available=False, reason=reason)
    return AvailabilityResult(available=True)


def get_available_slots(
    db: Session,
    court_id: UUID,
    day: date,
    user_id: Optional[UUID] = None,
) -> List[CourtSlot]:
    """Hourly slot grid for a court on a facility date, each flagged free or taken."""
    court = db.query(Court).filter(Court.id == court_id).first()
    if not court:
        raise NotFoundError("Court", court_id)

    slots = []
    for slot_start, slot_end in day_slots(day):
        reason = check_court_availability(db, court_id, slot_start, slot_end, exclude_user_id=user_id)
        slots.append(CourtSlot(start_time=slot_start, end_time=slot_end, available=reason is None))
    return slots
