"""
Pytest Configuration and Fixtures

Every test gets a fresh in-memory SQLite database with the full schema.
Outgoing email is replaced by a recorder so no thread pool or SMTP server
is involved.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("FACILITY_TIMEZONE", "UTC")

from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.models import (
    Coach,
    Court,
    CourtStatus,
    CourtType,
    Equipment,
    PricingRule,
    User,
)
from app.services import notifications

# 2030-06-15 is a Saturday
BOOKING_DAY = date(2030, 6, 15)


def at(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
    """UTC instant on the booking day (facility zone is UTC in tests)."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Provide a session bound to the test database."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Record outgoing emails instead of sending them."""
    sent = []

    def record_confirmation(email, details):
        sent.append(("booking_confirmation", email, details))
        return True

    def record_waitlist(email, details):
        sent.append(("waitlist", email, details))
        return True

    monkeypatch.setattr(notifications, "send_booking_confirmation", record_confirmation)
    monkeypatch.setattr(notifications, "send_waitlist_notification", record_waitlist)
    return sent


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def _make_user(db, email, full_name, role="user", phone=None):
    user = User(email=email, full_name=full_name, role=role, phone=phone)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    """Provide the booking user."""
    return _make_user(db, "alice@example.com", "Alice Player", phone="5550001")


@pytest.fixture
def other_user(db):
    """Provide a second, competing user."""
    return _make_user(db, "bob@example.com", "Bob Player")


@pytest.fixture
def third_user(db):
    return _make_user(db, "carol@example.com", "Carol Player")


@pytest.fixture
def admin_user(db):
    return _make_user(db, "admin@example.com", "Facility Admin", role="admin")


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@pytest.fixture
def court(db):
    """Provide an indoor court at 500/hr."""
    court = Court(name="Court X", type=CourtType.indoor, hourly_base_rate=Decimal("500.00"))
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def outdoor_court(db):
    court = Court(name="Court Y", type=CourtType.outdoor, hourly_base_rate=Decimal("300.00"))
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def maintenance_court(db):
    court = Court(
        name="Court M",
        type=CourtType.indoor,
        hourly_base_rate=Decimal("400.00"),
        status=CourtStatus.maintenance,
    )
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def racket(db):
    """Provide an equipment item with a pool of 5."""
    item = Equipment(name="Racket", type="racket", total_quantity=5, hourly_rate=Decimal("50.00"))
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def coach(db):
    coach = Coach(name="Coach Carter", email="carter@example.com", hourly_rate=Decimal("300.00"))
    db.add(coach)
    db.commit()
    db.refresh(coach)
    return coach


@pytest.fixture
def make_rule(db):
    """Factory for pricing rules."""

    def _make_rule(name, type, conditions, multiplier, priority=0, active=True):
        rule = PricingRule(
            name=name,
            type=type,
            conditions=conditions,
            multiplier=multiplier,
            priority=priority,
            active=active,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    return _make_rule
