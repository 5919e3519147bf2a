from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from itertools import groupby
from typing import List, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.booking import Booking, BookingStatus
from app.models.waitlist import WaitlistEntry, WaitlistStatus


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def facility_tz() -> ZoneInfo:
    return _zone(settings.FACILITY_TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to aware UTC.

    Naive values are taken to already be UTC, which is how they come back
    from backends without timezone support.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(value: datetime) -> datetime:
    """Convert an instant to facility wall-clock time."""
    return ensure_utc(value).astimezone(facility_tz())


def duration_hours(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600


def slot_key(start: datetime, end: datetime) -> Tuple[date, str, str]:
    """
    (local date, "HH:MM" start, "HH:MM" end): the key waitlist entries are
    queued under.
    """
    local_start = to_local(start)
    local_end = to_local(end)
    return local_start.date(), local_start.strftime("%H:%M"), local_end.strftime("%H:%M")


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Facility-local midnight to next midnight, as UTC instants."""
    start = datetime.combine(day, time.min, tzinfo=facility_tz())
    return start.astimezone(timezone.utc), (start + timedelta(days=1)).astimezone(timezone.utc)


def day_slots(day: date) -> List[Tuple[datetime, datetime]]:
    """Hourly slots between opening and closing hour for a facility date, as UTC instants."""
    tz = facility_tz()
    slots = []
    for hour in range(settings.OPENING_HOUR, settings.CLOSING_HOUR):
        start = datetime.combine(day, time(hour=hour), tzinfo=tz)
        slots.append((start.astimezone(timezone.utc), (start + timedelta(hours=1)).astimezone(timezone.utc)))
    return slots


# ---------------------------------------------------------------------------
# Housekeeping sweeps (run periodically from app.main)
# ---------------------------------------------------------------------------


def complete_past_bookings(db: Session) -> int:
    """
    Move confirmed bookings whose window has fully elapsed to 'completed'.

    Returns the number of bookings completed.
    """
    now = utcnow()
    bookings = (
        db.query(Booking)
        .filter(
            Booking.status == BookingStatus.confirmed,
            Booking.end_time <= now,
        )
        .all()
    )
    for booking in bookings:
        booking.status = BookingStatus.completed
    db.commit()
    return len(bookings)


def expire_waitlist_entries(db: Session) -> int:
    """
    Mark waiting entries past their expiry as 'expired' and close the gaps
    they leave in each queue.

    Returns the number of entries expired.
    """
    # Imported here: app.services.waitlist imports this module
    from app.services.waitlist import renumber_queue

    now = utcnow()
    stale = (
        db.query(WaitlistEntry)
        .filter(
            WaitlistEntry.status == WaitlistStatus.waiting,
            WaitlistEntry.expires_at <= now,
        )
        .all()
    )
    if not stale:
        return 0

    for entry in stale:
        entry.status = WaitlistStatus.expired
    db.flush()

    def group_of(e: WaitlistEntry):
        return (str(e.court_id), e.desired_date, e.desired_start_time, e.desired_end_time)

    for _, entries in groupby(sorted(stale, key=group_of), key=group_of):
        e = next(entries)
        renumber_queue(db, e.court_id, e.desired_date, e.desired_start_time, e.desired_end_time)

    db.commit()
    return len(stale)
