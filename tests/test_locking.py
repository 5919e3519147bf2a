"""
Unit Tests for Row Locking

Every writer locks the court row, then the coach row, then the equipment rows
in id order, and only then re-checks availability. SQLite ignores FOR UPDATE,
so the lock queries are recorded and compiled for PostgreSQL.
"""

import re
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Query

from app.models.equipment import Equipment
from app.schemas.booking import BookingCreate, BookingUpdate
from app.schemas.waitlist import WaitlistCreate
from app.services import bookings as booking_service
from app.services import reservations as reservation_service
from app.services import waitlist as waitlist_service
from app.services.exceptions import SlotUnavailableError

from conftest import at, BOOKING_DAY


@pytest.fixture
def write_log(monkeypatch):
    """Record lock queries (as PostgreSQL SQL) and availability re-checks, in call order."""
    log = []
    original_with_for_update = Query.with_for_update

    def recording_with_for_update(self, *args, **kwargs):
        locked = original_with_for_update(self, *args, **kwargs)
        log.append(("lock", str(locked.statement.compile(dialect=postgresql.dialect()))))
        return locked

    def recording(checker):
        def wrapper(*args, **kwargs):
            log.append(("check", None))
            return checker(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(Query, "with_for_update", recording_with_for_update)
    monkeypatch.setattr(booking_service, "check_availability", recording(booking_service.check_availability))
    monkeypatch.setattr(
        reservation_service, "check_court_availability", recording(reservation_service.check_court_availability)
    )
    return log


def steps(log):
    """Collapse the log into table names for locks and 'check' for re-checks."""
    out = []
    for kind, sql in log:
        if kind == "check":
            out.append("check")
            continue
        assert sql.rstrip().endswith("FOR UPDATE")
        out.append(re.search(r"FROM (\w+)", sql).group(1))
    return out


@pytest.fixture
def shoes(db):
    item = Equipment(name="Shoes", type="shoes", total_quantity=4, hourly_rate=Decimal("20.00"))
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


class TestBookingLocks:

    def test_create_locks_court_coach_equipment_then_checks(self, db, user, court, coach, racket, shoes, write_log):
        booking_service.create_booking(db, user.id, BookingCreate(
            court_id=court.id,
            coach_id=coach.id,
            equipment_items=[
                {"equipment_id": shoes.id, "quantity": 1},
                {"equipment_id": racket.id, "quantity": 2},
            ],
            start_time=at(10),
            end_time=at(11),
        ))

        assert steps(write_log) == ["courts", "coaches", "equipment", "check"]
        equipment_sql = write_log[2][1]
        assert "ORDER BY equipment.id" in equipment_sql

    def test_court_only_booking_locks_court(self, db, user, court, write_log):
        booking_service.create_booking(
            db, user.id, BookingCreate(court_id=court.id, start_time=at(10), end_time=at(11))
        )
        assert steps(write_log) == ["courts", "check"]

    def test_failed_check_still_locked_first(self, db, user, other_user, court, write_log):
        booking_service.create_booking(
            db, user.id, BookingCreate(court_id=court.id, start_time=at(10), end_time=at(11))
        )
        write_log.clear()

        with pytest.raises(SlotUnavailableError):
            booking_service.create_booking(
                db, other_user.id, BookingCreate(court_id=court.id, start_time=at(10), end_time=at(11))
            )
        assert steps(write_log) == ["courts", "check"]

    def test_reschedule_locks_before_recheck(self, db, user, court, coach, racket, write_log):
        booking = booking_service.create_booking(db, user.id, BookingCreate(
            court_id=court.id,
            coach_id=coach.id,
            equipment_items=[{"equipment_id": racket.id, "quantity": 1}],
            start_time=at(10),
            end_time=at(11),
        ))
        write_log.clear()

        booking_service.update_booking(
            db, booking.id, user.id, BookingUpdate(start_time=at(14), end_time=at(15), version=booking.version)
        )

        assert steps(write_log) == ["courts", "coaches", "equipment", "check"]

    def test_notes_only_update_takes_no_locks(self, db, user, court, write_log):
        booking = booking_service.create_booking(
            db, user.id, BookingCreate(court_id=court.id, start_time=at(10), end_time=at(11))
        )
        write_log.clear()

        booking_service.update_booking(db, booking.id, user.id, BookingUpdate(notes="bring balls"))

        assert steps(write_log) == []


class TestQueueLocks:

    def test_reservation_locks_court_then_checks(self, db, user, court, write_log):
        reservation_service.create_reservation(db, user.id, court.id, at(10), at(11))
        assert steps(write_log) == ["courts", "check"]

    def test_waitlist_join_locks_court(self, db, user, court, write_log):
        waitlist_service.join_waitlist(db, user.id, WaitlistCreate(
            court_id=court.id,
            desired_date=BOOKING_DAY,
            desired_start_time="09:00",
            desired_end_time="10:00",
        ))
        assert steps(write_log) == ["courts"]
