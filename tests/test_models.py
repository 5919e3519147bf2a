"""
Unit Tests for the ORM Models

Mapper configuration, enum storage and the booking version counter.
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session, configure_mappers
from sqlalchemy.orm.exc import StaleDataError

from app.db.base import Base
from app.models import Booking, BookingStatus, Court, CourtStatus, CourtType

from conftest import at


def test_mappers_configure():
    configure_mappers()
    tables = set(Base.metadata.tables)
    assert {
        "users", "courts", "equipment", "coaches", "pricing_rules", "bookings",
        "booking_equipment", "reservations", "waitlist_entries", "notifications",
    } <= tables


def test_enums_stored_by_value(db):
    court = Court(name="Court V", type=CourtType.outdoor, hourly_base_rate=Decimal("10"))
    db.add(court)
    db.commit()

    raw = db.execute(Base.metadata.tables["courts"].select()).mappings().one()
    assert raw["type"] == "outdoor"
    assert raw["status"] == "active"
    db.refresh(court)
    assert court.status == CourtStatus.active


class TestBookingVersion:

    def _booking(self, db, user, court):
        booking = Booking(
            user_id=user.id,
            court_id=court.id,
            start_time=at(10),
            end_time=at(11),
            duration_hours=1.0,
            court_fee=Decimal("500"),
            base_total=Decimal("500"),
            final_total=Decimal("500"),
            applied_rules=[],
        )
        db.add(booking)
        db.commit()
        return booking

    def test_starts_at_zero_and_increments(self, db, user, court):
        booking = self._booking(db, user, court)
        assert booking.version == 0
        assert booking.status == BookingStatus.confirmed

        booking.notes = "changed"
        db.commit()
        assert booking.version == 1

    def test_concurrent_write_detected(self, db, engine, user, court):
        """A second session that saved first makes the stale session's UPDATE fail."""
        booking = self._booking(db, user, court)
        assert booking.version == 0

        with Session(bind=engine) as other:
            same = other.get(Booking, booking.id)
            same.notes = "from elsewhere"
            other.commit()

        booking.notes = "stale write"
        with pytest.raises(StaleDataError):
            db.commit()
        db.rollback()

        db.refresh(booking)
        assert booking.version == 1
        assert booking.notes == "from elsewhere"
