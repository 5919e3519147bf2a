"""
Booking allocator.

Every write follows the same shape: lock the resource rows, re-run the
availability checker against the locked state, price, persist, commit. Any
failure before the commit rolls the whole unit of work back. Side effects
that must not undo a booking (email, waitlist promotion) run after commit.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from app.models.booking import Booking, BookingEquipment, BookingStatus
from app.models.court import CourtType
from app.models.notification import Notification
from app.models.user import User
from app.schemas.availability import EquipmentItem
from app.schemas.booking import (
    Booking as BookingSchema,
    BookingCourtSummary,
    BookingCreate,
    BookingEquipmentResponse,
    BookingPricing,
    BookingUpdate,
)
from app.schemas.pricing import AppliedRule, PricingBreakdown
from app.services import notifications
from app.services.availability import check_availability, merge_equipment_items
from app.services.exceptions import (
    AuthorizationError,
    BookingValidationError,
    ConflictError,
    NotFoundError,
    SlotUnavailableError,
    StaleVersionError,
)
from app.services.locking import lock_resources
from app.services.pricing import calculate_price
from app.services.reservations import release_user_holds
from app.utils.timeslots import day_bounds, ensure_utc, to_local, utcnow

logger = logging.getLogger(__name__)

CLOSED_BOOKING_STATUSES = (BookingStatus.cancelled, BookingStatus.completed)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_booking(db: Session, booking_id: UUID) -> Optional[Booking]:
    """Load a booking with court, coach and equipment lines eager-loaded."""
    return (
        db.query(Booking)
        .options(
            joinedload(Booking.court),
            joinedload(Booking.coach),
            joinedload(Booking.equipment).joinedload(BookingEquipment.item),
        )
        .filter(Booking.id == booking_id)
        .first()
    )


def _get_authorized(db: Session, booking_id: UUID, user_id: UUID, is_admin: bool) -> Booking:
    booking = _load_booking(db, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    if booking.user_id != user_id and not is_admin:
        raise AuthorizationError("Not authorized to access this booking")
    return booking


def _apply_pricing(booking: Booking, pricing: PricingBreakdown) -> None:
    booking.duration_hours = pricing.duration
    booking.court_fee = pricing.court_fee
    booking.equipment_fee = pricing.equipment_fee
    booking.coach_fee = pricing.coach_fee
    booking.base_total = pricing.base_total
    booking.applied_rules = [rule.model_dump() for rule in pricing.applied_rules]
    booking.final_total = pricing.final_total


def _notify(db: Session, user_id: UUID, title: str, message: str, type: str, reference_id: UUID) -> None:
    db.add(Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        reference_id=reference_id,
    ))


def _describe_slot(booking: Booking) -> str:
    local_start = to_local(booking.start_time)
    local_end = to_local(booking.end_time)
    court_name = booking.court.name if booking.court else "your court"
    return f"{court_name} on {local_start:%Y-%m-%d} {local_start:%H:%M}-{local_end:%H:%M}"


def booking_email_details(booking: Booking) -> Dict[str, Any]:
    local_start = to_local(booking.start_time)
    local_end = to_local(booking.end_time)
    equipment = ", ".join(
        f"{line.quantity}x {line.item.name if line.item else line.equipment_id}"
        for line in booking.equipment
    )
    return {
        "booking_id": str(booking.id),
        "court_name": booking.court.name if booking.court else "Court",
        "date": local_start.date().isoformat(),
        "start_time": local_start.strftime("%H:%M"),
        "end_time": local_end.strftime("%H:%M"),
        "coach": booking.coach.name if booking.coach else None,
        "equipment": equipment or None,
        "total_amount": str(booking.final_total),
    }


def serialize_booking(booking: Booking) -> BookingSchema:
    """Convert a Booking ORM object to its schema representation."""
    court_summary = None
    if booking.court:
        court_summary = BookingCourtSummary(
            id=booking.court.id,
            name=booking.court.name,
            type=CourtType(booking.court.type).value,
        )

    equipment_out = [
        BookingEquipmentResponse(
            equipment_id=line.equipment_id,
            name=line.item.name if line.item else None,
            quantity=line.quantity,
        )
        for line in booking.equipment
    ]

    return BookingSchema(
        id=booking.id,
        user_id=booking.user_id,
        court_id=booking.court_id,
        coach_id=booking.coach_id,
        start_time=ensure_utc(booking.start_time),
        end_time=ensure_utc(booking.end_time),
        duration=booking.duration_hours,
        pricing=BookingPricing(
            court_fee=booking.court_fee,
            equipment_fee=booking.equipment_fee,
            coach_fee=booking.coach_fee,
            base_total=booking.base_total,
            applied_rules=[AppliedRule(**rule) for rule in booking.applied_rules or []],
            final_total=booking.final_total,
        ),
        status=BookingStatus(booking.status).value,
        version=booking.version,
        phone=booking.phone,
        notes=booking.notes,
        cancelled_at=booking.cancelled_at,
        created_at=booking.created_at,
        court=court_summary,
        equipment=equipment_out,
    )


def _send_confirmation(db: Session, booking: Booking) -> None:
    try:
        user = db.query(User).filter(User.id == booking.user_id).first()
        notifications.send_booking_confirmation(
            user.email if user else None, booking_email_details(booking)
        )
    except Exception:
        logger.exception("Failed to send confirmation for booking %s", booking.id)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def create_booking(db: Session, user_id: UUID, data: BookingCreate) -> Booking:
    """
    Allocate a court (+ coach, + equipment) for [start_time, end_time).

    Raises SlotUnavailableError when any resource is taken at the moment the
    locks are held; the user's own soft holds on the court never block them.
    """
    start, end = ensure_utc(data.start_time), ensure_utc(data.end_time)
    if end <= start:
        raise BookingValidationError("End time must be after start time", field="end_time")
    items: List[EquipmentItem] = merge_equipment_items(data.equipment_items)
    if any(item.quantity <= 0 for item in items):
        raise BookingValidationError("Equipment quantity must be positive", field="equipment_items")

    try:
        lock_resources(db, data.court_id, data.coach_id, [item.equipment_id for item in items])

        result = check_availability(
            db,
            court_id=data.court_id,
            coach_id=data.coach_id,
            equipment_items=items,
            start=start,
            end=end,
            exclude_user_id=user_id,
        )
        if not result.available:
            raise SlotUnavailableError(result.reason)

        pricing = calculate_price(db, data.court_id, items, data.coach_id, start, end)

        if data.phone:
            user = db.query(User).filter(User.id == user_id).first()
            if user and user.phone != data.phone:
                user.phone = data.phone

        booking = Booking(
            user_id=user_id,
            court_id=data.court_id,
            coach_id=data.coach_id,
            start_time=start,
            end_time=end,
            status=BookingStatus.confirmed,
            phone=data.phone,
            notes=data.notes,
        )
        _apply_pricing(booking, pricing)
        booking.equipment = [
            BookingEquipment(equipment_id=item.equipment_id, quantity=item.quantity)
            for item in items
        ]
        db.add(booking)
        db.flush()  # get booking.id

        released = release_user_holds(db, user_id, data.court_id, start, end)
        if released:
            logger.debug("Released %d hold(s) for user %s on booking", released, user_id)

        db.refresh(booking)
        _notify(
            db, user_id,
            title="Booking Confirmed",
            message=f"Your booking for {_describe_slot(booking)} is confirmed! Total: {booking.final_total}",
            type="booking_confirmed",
            reference_id=booking.id,
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    booking = _load_booking(db, booking.id)
    logger.info(
        "Booking %s confirmed: court %s %s-%s for user %s",
        booking.id, booking.court_id, start.isoformat(), end.isoformat(), user_id,
    )
    _send_confirmation(db, booking)
    return booking


def cancel_booking(db: Session, booking_id: UUID, user_id: UUID, is_admin: bool = False) -> Booking:
    """
    Cancel a booking, then offer the freed slot to the waitlist.

    The cancellation is committed before promotion runs; promotion problems
    are logged and never undo it.
    """
    # Imported here: the promoter books through this module
    from app.services.waitlist import process_waitlist

    booking = _get_authorized(db, booking_id, user_id, is_admin)
    if booking.status in CLOSED_BOOKING_STATUSES:
        raise ConflictError(
            f"Booking cannot be cancelled (current status: '{BookingStatus(booking.status).value}')",
            code="INVALID_STATUS",
        )

    try:
        booking.status = BookingStatus.cancelled
        booking.cancelled_at = utcnow()
        _notify(
            db, booking.user_id,
            title="Booking Cancelled",
            message=f"Your booking for {_describe_slot(booking)} has been cancelled.",
            type="booking_cancelled",
            reference_id=booking.id,
        )
        db.commit()
    except StaleDataError:
        db.rollback()
        raise StaleVersionError(booking_id)
    except Exception:
        db.rollback()
        raise

    logger.info("Booking %s cancelled by user %s", booking_id, user_id)

    try:
        process_waitlist(db, booking)
    except Exception:
        db.rollback()
        logger.exception("Waitlist promotion failed after cancelling booking %s", booking_id)

    return _load_booking(db, booking_id)


def update_booking(
    db: Session,
    booking_id: UUID,
    user_id: UUID,
    patch: BookingUpdate,
    is_admin: bool = False,
) -> Booking:
    """
    Reschedule a booking and/or edit its notes.

    When `patch.version` is sent it must match the stored version. A new
    window is re-checked (ignoring this booking and its owner's holds) and
    re-priced. Every successful save bumps the version by one.
    """
    booking = _get_authorized(db, booking_id, user_id, is_admin)
    if booking.status in CLOSED_BOOKING_STATUSES:
        raise ConflictError(
            f"Booking cannot be modified (current status: '{BookingStatus(booking.status).value}')",
            code="INVALID_STATUS",
        )
    if patch.version is not None and patch.version != booking.version:
        raise StaleVersionError(booking_id, expected=patch.version, actual=booking.version)

    loaded_version = booking.version
    start = ensure_utc(patch.start_time) if patch.start_time else ensure_utc(booking.start_time)
    end = ensure_utc(patch.end_time) if patch.end_time else ensure_utc(booking.end_time)
    if end <= start:
        raise BookingValidationError("End time must be after start time", field="end_time")
    window_changed = start != ensure_utc(booking.start_time) or end != ensure_utc(booking.end_time)

    try:
        if window_changed:
            items = [
                EquipmentItem(equipment_id=line.equipment_id, quantity=line.quantity)
                for line in booking.equipment
            ]
            lock_resources(db, booking.court_id, booking.coach_id, [item.equipment_id for item in items])

            result = check_availability(
                db,
                court_id=booking.court_id,
                coach_id=booking.coach_id,
                equipment_items=items,
                start=start,
                end=end,
                exclude_booking_id=booking.id,
                exclude_user_id=booking.user_id,
            )
            if not result.available:
                raise SlotUnavailableError(result.reason)

            pricing = calculate_price(db, booking.court_id, items, booking.coach_id, start, end)
            booking.start_time = start
            booking.end_time = end
            _apply_pricing(booking, pricing)

        if "notes" in patch.model_fields_set:
            booking.notes = patch.notes

        db.commit()
    except StaleDataError:
        db.rollback()
        raise StaleVersionError(booking_id, expected=loaded_version)
    except Exception:
        db.rollback()
        raise

    logger.info("Booking %s updated (version %s)", booking_id, booking.version)
    return _load_booking(db, booking_id)


def get_booking_by_id(db: Session, booking_id: UUID, user_id: UUID, is_admin: bool = False) -> Booking:
    return _get_authorized(db, booking_id, user_id, is_admin)


def get_user_bookings(
    db: Session,
    user_id: UUID,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Booking], int]:
    """Return (page of bookings, total count) for a user, latest start first."""
    query = (
        db.query(Booking)
        .options(
            joinedload(Booking.court),
            joinedload(Booking.coach),
            joinedload(Booking.equipment).joinedload(BookingEquipment.item),
        )
        .filter(Booking.user_id == user_id)
    )
    if status:
        try:
            query = query.filter(Booking.status == BookingStatus(status))
        except ValueError:
            raise BookingValidationError(f"Unknown booking status '{status}'", field="status")
    if start_date:
        query = query.filter(Booking.start_time >= day_bounds(start_date)[0])
    if end_date:
        query = query.filter(Booking.start_time < day_bounds(end_date)[1])

    total = query.count()
    bookings = (
        query.order_by(Booking.start_time.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return bookings, total
