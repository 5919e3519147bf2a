"""
Waitlist queue and promoter.

Entries queue under a slot key (court, facility date, "HH:MM" start,
"HH:MM" end). Within a key, the waiting entries hold positions 1..N with
1 at the front. Every path that takes an entry out of the waiting set
renumbers what remains.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.booking import Booking
from app.models.notification import Notification
from app.models.user import User
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.schemas.availability import EquipmentItem
from app.schemas.booking import BookingCreate
from app.schemas.waitlist import WaitlistCreate, WaitlistEntry as WaitlistEntrySchema
from app.services import notifications
from app.services.availability import merge_equipment_items
from app.services.bookings import create_booking
from app.services.exceptions import (
    AuthorizationError,
    BookingServiceError,
    BookingValidationError,
    ConflictError,
    NotFoundError,
)
from app.services.locking import lock_court
from app.utils.timeslots import facility_tz, slot_key, utcnow

logger = logging.getLogger(__name__)

AUTO_BOOKING_NOTE = "Auto-booked from waitlist"


def _waiting_in_group(db: Session, court_id: UUID, day: date, start_time: str, end_time: str):
    return (
        db.query(WaitlistEntry)
        .filter(
            WaitlistEntry.court_id == court_id,
            WaitlistEntry.desired_date == day,
            WaitlistEntry.desired_start_time == start_time,
            WaitlistEntry.desired_end_time == end_time,
            WaitlistEntry.status == WaitlistStatus.waiting,
        )
        .order_by(WaitlistEntry.position.asc(), WaitlistEntry.created_at.asc())
    )


def renumber_queue(db: Session, court_id: UUID, day: date, start_time: str, end_time: str) -> int:
    """
    Rewrite the waiting entries of a slot group to positions 1..N, keeping
    their relative order. Flushes, does not commit. Returns N.
    """
    entries = _waiting_in_group(db, court_id, day, start_time, end_time).all()
    for position, entry in enumerate(entries, start=1):
        if entry.position != position:
            entry.position = position
    db.flush()
    return len(entries)


def _slot_details(entry: WaitlistEntry, booked: bool) -> dict:
    return {
        "court_name": entry.court.name if entry.court else "Court",
        "date": entry.desired_date.isoformat(),
        "start_time": entry.desired_start_time,
        "end_time": entry.desired_end_time,
        "booked": booked,
    }


def _send_waitlist_email(db: Session, entry: WaitlistEntry, booked: bool) -> None:
    try:
        user = db.query(User).filter(User.id == entry.user_id).first()
        notifications.send_waitlist_notification(user.email if user else None, _slot_details(entry, booked))
    except Exception:
        logger.exception("Failed to send waitlist email for entry %s", entry.id)


def serialize_entry(entry: WaitlistEntry) -> WaitlistEntrySchema:
    return WaitlistEntrySchema(
        id=entry.id,
        user_id=entry.user_id,
        court_id=entry.court_id,
        desired_date=entry.desired_date,
        desired_start_time=entry.desired_start_time,
        desired_end_time=entry.desired_end_time,
        equipment=entry.equipment or [],
        coach_id=entry.coach_id,
        notes=entry.notes,
        position=entry.position,
        status=WaitlistStatus(entry.status).value,
        expires_at=entry.expires_at,
        notified_at=entry.notified_at,
        created_at=entry.created_at,
    )


# ---------------------------------------------------------------------------
# Promotion
# ---------------------------------------------------------------------------


def process_waitlist(db: Session, cancelled_booking: Booking) -> Optional[Booking]:
    """
    Try to book the freed window of a cancelled booking for the front of its
    waitlist queue.

    The booking goes through the regular allocator, so if anyone else has
    taken the window meanwhile the attempt fails, the entry keeps its place
    and None is returned.
    """
    day, start_time, end_time = slot_key(cancelled_booking.start_time, cancelled_booking.end_time)
    court_id = cancelled_booking.court_id

    entry = _waiting_in_group(db, court_id, day, start_time, end_time).first()
    if not entry:
        return None

    entry_id = entry.id
    data = BookingCreate(
        court_id=entry.court_id,
        coach_id=entry.coach_id,
        equipment_items=[
            EquipmentItem(equipment_id=item["equipment_id"], quantity=item.get("quantity", 1))
            for item in entry.equipment or []
        ],
        start_time=cancelled_booking.start_time,
        end_time=cancelled_booking.end_time,
        phone=entry.phone,
        notes=AUTO_BOOKING_NOTE,
    )

    try:
        booking = create_booking(db, entry.user_id, data)
    except BookingServiceError as exc:
        logger.warning(
            "Waitlist entry %s could not be promoted for court %s %s %s-%s: %s",
            entry_id, court_id, day, start_time, end_time, exc.message,
        )
        return None

    entry = db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
    if entry is None:
        # Left the queue while the booking was being made; the booking stands
        logger.warning(
            "Waitlist entry %s was removed before conversion; booking %s kept",
            entry_id, booking.id,
        )
        return booking

    try:
        entry.status = WaitlistStatus.converted
        db.flush()
        renumber_queue(db, court_id, day, start_time, end_time)
        db.add(Notification(
            user_id=entry.user_id,
            title="Waitlist Slot Booked",
            message=(
                f"A slot you were waiting for opened up and has been booked for you: "
                f"{day.isoformat()} {start_time}-{end_time}."
            ),
            type="waitlist_converted",
            reference_id=booking.id,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Waitlist entry %s converted to booking %s", entry_id, booking.id)
    _send_waitlist_email(db, entry, booked=True)
    return booking


def notify_next(db: Session, court_id: UUID, day: date, start_time: str, end_time: str) -> WaitlistEntry:
    """
    Mark the front waiting entry of a slot group as notified and email the
    user. Books nothing and leaves the remaining positions untouched.
    """
    entry = _waiting_in_group(db, court_id, day, start_time, end_time).first()
    if not entry:
        raise NotFoundError("Waitlist entry", message="No users in waitlist for this slot")

    entry.status = WaitlistStatus.notified
    entry.notified_at = utcnow()
    db.add(Notification(
        user_id=entry.user_id,
        title="Slot Available",
        message=f"A slot you are waiting for is available: {day.isoformat()} {start_time}-{end_time}.",
        type="waitlist_notified",
        reference_id=entry.id,
    ))
    db.commit()
    db.refresh(entry)

    _send_waitlist_email(db, entry, booked=False)
    return entry


# ---------------------------------------------------------------------------
# Queue membership
# ---------------------------------------------------------------------------


def join_waitlist(db: Session, user_id: UUID, data: WaitlistCreate) -> WaitlistEntry:
    """Append the user to the back of a slot group's queue."""
    if data.desired_end_time <= data.desired_start_time:
        raise BookingValidationError("End time must be after start time", field="desired_end_time")

    group = (data.court_id, data.desired_date, data.desired_start_time, data.desired_end_time)
    try:
        # Serializes position assignment per court
        lock_court(db, data.court_id)

        duplicate = (
            _waiting_in_group(db, *group)
            .filter(WaitlistEntry.user_id == user_id)
            .first()
        )
        if duplicate:
            raise ConflictError(
                "You are already in the waitlist for this slot",
                code="ALREADY_WAITLISTED",
                details={"entry_id": str(duplicate.id), "position": duplicate.position},
            )

        count = renumber_queue(db, *group)

        if data.phone:
            user = db.query(User).filter(User.id == user_id).first()
            if user and user.phone != data.phone:
                user.phone = data.phone

        desired_midnight = datetime.combine(data.desired_date, time.min, tzinfo=facility_tz())
        entry = WaitlistEntry(
            user_id=user_id,
            court_id=data.court_id,
            desired_date=data.desired_date,
            desired_start_time=data.desired_start_time,
            desired_end_time=data.desired_end_time,
            equipment=[
                {"equipment_id": str(item.equipment_id), "quantity": item.quantity}
                for item in merge_equipment_items(data.equipment_items)
            ],
            coach_id=data.coach_id,
            phone=data.phone,
            notes=data.notes,
            position=count + 1,
            status=WaitlistStatus.waiting,
            expires_at=(desired_midnight + timedelta(hours=settings.WAITLIST_EXPIRY_HOURS)).astimezone(timezone.utc),
        )
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    logger.info(
        "User %s joined waitlist for court %s %s %s-%s at position %d",
        user_id, data.court_id, data.desired_date, data.desired_start_time, data.desired_end_time, entry.position,
    )
    return entry


def leave_waitlist(db: Session, entry_id: UUID, user_id: UUID, is_admin: bool = False) -> None:
    entry = db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
    if not entry:
        raise NotFoundError("Waitlist entry", entry_id)
    if entry.user_id != user_id and not is_admin:
        raise AuthorizationError("Not authorized to remove this waitlist entry")

    group = (entry.court_id, entry.desired_date, entry.desired_start_time, entry.desired_end_time)
    try:
        db.delete(entry)
        db.flush()
        renumber_queue(db, *group)
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_user_waitlist(db: Session, user_id: UUID, status: Optional[str] = "waiting") -> List[WaitlistEntry]:
    query = db.query(WaitlistEntry).filter(WaitlistEntry.user_id == user_id)
    if status:
        try:
            query = query.filter(WaitlistEntry.status == WaitlistStatus(status))
        except ValueError:
            raise BookingValidationError(f"Unknown waitlist status '{status}'", field="status")
    return query.order_by(WaitlistEntry.desired_date.asc(), WaitlistEntry.desired_start_time.asc()).all()
