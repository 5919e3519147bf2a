"""
Unit Tests for the Periodic Sweeps

Completing elapsed bookings and expiring stale waitlist entries.
"""

from datetime import date

from app.models.booking import BookingStatus
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.schemas.booking import BookingCreate
from app.schemas.waitlist import WaitlistCreate
from app.services import bookings as booking_service
from app.services import waitlist as waitlist_service
from app.utils.timeslots import complete_past_bookings, expire_waitlist_entries

from conftest import at

PAST_DAY = date(2020, 3, 2)


def _join(db, user, court, day):
    return waitlist_service.join_waitlist(
        db,
        user.id,
        WaitlistCreate(court_id=court.id, desired_date=day, desired_start_time="09:00", desired_end_time="10:00"),
    )


class TestCompletePastBookings:

    def test_elapsed_confirmed_bookings_complete(self, db, user, court):
        past = booking_service.create_booking(
            db, user.id, BookingCreate(court_id=court.id, start_time=at(9, day=PAST_DAY), end_time=at(10, day=PAST_DAY))
        )
        future = booking_service.create_booking(
            db, user.id, BookingCreate(court_id=court.id, start_time=at(9), end_time=at(10))
        )

        assert complete_past_bookings(db) == 1

        db.refresh(past)
        db.refresh(future)
        assert past.status == BookingStatus.completed
        assert future.status == BookingStatus.confirmed

    def test_cancelled_bookings_untouched(self, db, user, court):
        booking = booking_service.create_booking(
            db, user.id, BookingCreate(court_id=court.id, start_time=at(9, day=PAST_DAY), end_time=at(10, day=PAST_DAY))
        )
        booking_service.cancel_booking(db, booking.id, user.id)

        assert complete_past_bookings(db) == 0


class TestExpireWaitlistEntries:

    def test_stale_entries_expire(self, db, user, other_user, court):
        stale = _join(db, user, court, PAST_DAY)
        fresh = _join(db, other_user, court, date(2030, 6, 15))

        assert expire_waitlist_entries(db) == 1

        db.refresh(stale)
        db.refresh(fresh)
        assert stale.status == WaitlistStatus.expired
        assert fresh.status == WaitlistStatus.waiting

    def test_remaining_entries_renumbered(self, db, user, other_user, court):
        """An expired entry ahead in the queue leaves no gap behind it."""
        first = _join(db, user, court, PAST_DAY)
        second = _join(db, other_user, court, PAST_DAY)
        second.expires_at = at(0, day=date(2030, 1, 1))
        db.commit()

        expire_waitlist_entries(db)

        db.refresh(first)
        remaining = db.query(WaitlistEntry).filter(WaitlistEntry.status == WaitlistStatus.waiting).all()
        assert first.status == WaitlistStatus.expired
        assert [(e.id, e.position) for e in remaining] == [(second.id, 1)]

    def test_nothing_to_do(self, db):
        assert expire_waitlist_entries(db) == 0
