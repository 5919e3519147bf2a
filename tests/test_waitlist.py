"""
Unit Tests for the Waitlist

Joining, leaving, promotion on cancellation, notify-next and queue density.
"""

import uuid
from datetime import date, datetime, timezone

import pytest

from app.models.booking import Booking, BookingStatus
from app.models.notification import Notification
from app.models.waitlist import WaitlistEntry, WaitlistStatus
from app.schemas.booking import BookingCreate
from app.schemas.waitlist import WaitlistCreate
from app.services import bookings as booking_service
from app.services import waitlist as waitlist_service
from app.services.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.utils.timeslots import ensure_utc

from conftest import at, BOOKING_DAY


def _book(db, user, court, start, end, **extra):
    return booking_service.create_booking(
        db, user.id, BookingCreate(court_id=court.id, start_time=start, end_time=end, **extra)
    )


def _join(db, user, court, start="09:00", end="10:00", **extra):
    return waitlist_service.join_waitlist(
        db,
        user.id,
        WaitlistCreate(
            court_id=court.id,
            desired_date=BOOKING_DAY,
            desired_start_time=start,
            desired_end_time=end,
            **extra,
        ),
    )


def _positions(db, court, start="09:00", end="10:00"):
    entries = (
        db.query(WaitlistEntry)
        .filter(
            WaitlistEntry.court_id == court.id,
            WaitlistEntry.desired_date == BOOKING_DAY,
            WaitlistEntry.desired_start_time == start,
            WaitlistEntry.desired_end_time == end,
            WaitlistEntry.status == WaitlistStatus.waiting,
        )
        .order_by(WaitlistEntry.position)
        .all()
    )
    return [(e.user_id, e.position) for e in entries]


class TestJoinAndLeave:

    def test_positions_are_assigned_in_order(self, db, user, other_user, third_user, court):
        first = _join(db, user, court)
        second = _join(db, other_user, court)
        third = _join(db, third_user, court)

        assert (first.position, second.position, third.position) == (1, 2, 3)
        assert first.status == WaitlistStatus.waiting

    def test_expires_a_day_after_desired_date(self, db, user, court):
        entry = _join(db, user, court)
        assert ensure_utc(entry.expires_at) == datetime(2030, 6, 16, tzinfo=timezone.utc)

    def test_duplicate_rejected(self, db, user, court):
        _join(db, user, court)
        with pytest.raises(ConflictError) as exc:
            _join(db, user, court)
        assert exc.value.code == "ALREADY_WAITLISTED"

    def test_same_user_different_slot(self, db, user, court):
        _join(db, user, court)
        entry = _join(db, user, court, start="10:00", end="11:00")
        assert entry.position == 1

    def test_equipment_and_phone_recorded(self, db, user, court, racket):
        entry = _join(
            db, user, court,
            equipment_items=[{"equipmentId": str(racket.id), "quantity": 2}],
            phone="5551234",
        )

        assert entry.equipment == [{"equipment_id": str(racket.id), "quantity": 2}]
        db.refresh(user)
        assert user.phone == "5551234"

    def test_leave_renumbers(self, db, user, other_user, third_user, court):
        first = _join(db, user, court)
        _join(db, other_user, court)
        _join(db, third_user, court)

        waitlist_service.leave_waitlist(db, first.id, user.id)

        assert _positions(db, court) == [(other_user.id, 1), (third_user.id, 2)]

    def test_only_owner_or_admin_may_leave(self, db, user, other_user, admin_user, court):
        entry = _join(db, user, court)
        with pytest.raises(AuthorizationError):
            waitlist_service.leave_waitlist(db, entry.id, other_user.id)

        waitlist_service.leave_waitlist(db, entry.id, admin_user.id, is_admin=True)
        assert db.query(WaitlistEntry).count() == 0

    def test_leave_missing_entry(self, db, user):
        with pytest.raises(NotFoundError):
            waitlist_service.leave_waitlist(db, uuid.uuid4(), user.id)

    def test_user_waitlist_listing(self, db, user, other_user, court):
        _join(db, user, court)
        _join(db, other_user, court)
        _join(db, user, court, start="10:00", end="11:00")

        mine = waitlist_service.get_user_waitlist(db, user.id)
        assert [e.desired_start_time for e in mine] == ["09:00", "10:00"]


class TestPromotion:

    def test_cancellation_books_front_of_queue(self, db, user, other_user, court, sent_emails):
        """The freed 09:00-10:00 slot goes to the single waiting user."""
        booking = _book(db, user, court, at(9), at(10))
        entry = _join(db, other_user, court)

        booking_service.cancel_booking(db, booking.id, user.id)

        promoted = (
            db.query(Booking)
            .filter(Booking.user_id == other_user.id, Booking.court_id == court.id)
            .one()
        )
        assert promoted.status == BookingStatus.confirmed
        assert promoted.notes == waitlist_service.AUTO_BOOKING_NOTE

        db.refresh(entry)
        assert entry.status == WaitlistStatus.converted
        assert _positions(db, court) == []

        kinds = [(kind, email) for kind, email, _ in sent_emails]
        assert ("waitlist", other_user.email) in kinds
        types = {n.type for n in db.query(Notification).filter(Notification.user_id == other_user.id)}
        assert types == {"booking_confirmed", "waitlist_converted"}

    def test_remaining_queue_is_renumbered(self, db, user, other_user, third_user, admin_user, court):
        booking = _book(db, user, court, at(9), at(10))
        _join(db, other_user, court)
        _join(db, third_user, court)
        _join(db, admin_user, court)

        booking_service.cancel_booking(db, booking.id, user.id)

        assert _positions(db, court) == [(third_user.id, 1), (admin_user.id, 2)]

    def test_entry_equipment_and_coach_reused(self, db, user, other_user, court, racket, coach):
        booking = _book(db, user, court, at(9), at(10))
        _join(
            db, other_user, court,
            equipment_items=[{"equipment_id": str(racket.id), "quantity": 2}],
            coach_id=coach.id,
        )

        booking_service.cancel_booking(db, booking.id, user.id)

        promoted = db.query(Booking).filter(Booking.user_id == other_user.id).one()
        assert promoted.coach_id == coach.id
        assert [(line.equipment_id, line.quantity) for line in promoted.equipment] == [(racket.id, 2)]

    def test_failed_promotion_keeps_entry_waiting(self, db, user, other_user, third_user, court, outdoor_court, coach):
        """The waiting user wants a coach who is busy on another court, so the allocator refuses."""
        booking = _book(db, user, court, at(9), at(10))
        _join(db, other_user, court, coach_id=coach.id)
        _book(db, third_user, outdoor_court, at(9), at(10), coach_id=coach.id)

        cancelled = booking_service.cancel_booking(db, booking.id, user.id)

        assert cancelled.status == BookingStatus.cancelled
        assert db.query(Booking).filter(Booking.user_id == other_user.id).count() == 0
        assert _positions(db, court) == [(other_user.id, 1)]

    def test_only_matching_slot_is_promoted(self, db, user, other_user, court):
        booking = _book(db, user, court, at(9), at(10))
        _join(db, other_user, court, start="09:00", end="11:00")

        booking_service.cancel_booking(db, booking.id, user.id)

        assert db.query(Booking).filter(Booking.user_id == other_user.id).count() == 0
        assert _positions(db, court, end="11:00") == [(other_user.id, 1)]

    def test_entry_removed_during_promotion(self, db, user, other_user, court, monkeypatch, caplog):
        """The user leaves the queue after the booking commits; the booking stands."""
        booking = _book(db, user, court, at(9), at(10))
        entry_id = _join(db, other_user, court).id
        real_create_booking = waitlist_service.create_booking

        def create_then_leave(session, user_id, data):
            created = real_create_booking(session, user_id, data)
            session.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).delete()
            session.commit()
            return created

        monkeypatch.setattr(waitlist_service, "create_booking", create_then_leave)

        booking_service.cancel_booking(db, booking.id, user.id)

        promoted = db.query(Booking).filter(Booking.user_id == other_user.id).one()
        assert promoted.notes == waitlist_service.AUTO_BOOKING_NOTE
        assert db.query(WaitlistEntry).count() == 0
        types = {n.type for n in db.query(Notification).filter(Notification.user_id == other_user.id)}
        assert types == {"booking_confirmed"}
        assert "removed before conversion" in caplog.text
        assert "Waitlist promotion failed" not in caplog.text

    def test_no_waiting_entries_is_noop(self, db, user, court):
        booking = _book(db, user, court, at(9), at(10))
        booking_service.cancel_booking(db, booking.id, user.id)
        assert db.query(Booking).count() == 1


class TestNotifyNext:

    def test_marks_front_entry_notified(self, db, user, other_user, court, sent_emails):
        first = _join(db, user, court)
        second = _join(db, other_user, court)

        notified = waitlist_service.notify_next(db, court.id, BOOKING_DAY, "09:00", "10:00")

        assert notified.id == first.id
        assert notified.status == WaitlistStatus.notified
        assert notified.notified_at is not None
        db.refresh(second)
        assert second.position == 2
        assert db.query(Booking).count() == 0
        assert sent_emails[-1][0] == "waitlist"
        assert sent_emails[-1][2]["booked"] is False

    def test_next_join_restores_density(self, db, user, other_user, third_user, court):
        _join(db, user, court)
        _join(db, other_user, court)
        waitlist_service.notify_next(db, court.id, BOOKING_DAY, "09:00", "10:00")

        _join(db, third_user, court)

        assert _positions(db, court) == [(other_user.id, 1), (third_user.id, 2)]

    def test_empty_queue(self, db, court):
        with pytest.raises(NotFoundError):
            waitlist_service.notify_next(db, court.id, date(2030, 1, 1), "09:00", "10:00")
