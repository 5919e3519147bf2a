"""
Soft holds on a court window.

A reservation keeps other users off a court for RESERVATION_TTL_MINUTES while
its owner completes the booking form. Expiry is never written back: a hold is
live while `status == active and expires_at > now`, and every reader applies
that predicate itself.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.reservation import Reservation, ReservationStatus
from app.schemas.reservation import Reservation as ReservationSchema
from app.services.availability import check_court_availability
from app.services.exceptions import (
    AuthorizationError,
    BookingValidationError,
    NotFoundError,
    SlotUnavailableError,
)
from app.services.locking import lock_court
from app.utils.timeslots import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def _ttl() -> timedelta:
    return timedelta(minutes=settings.RESERVATION_TTL_MINUTES)


def is_live(reservation: Reservation, now: datetime = None) -> bool:
    now = now or utcnow()
    return (
        reservation.status == ReservationStatus.active
        and ensure_utc(reservation.expires_at) > now
    )


def expires_in(reservation: Reservation) -> int:
    """Seconds left on a hold, never negative."""
    remaining = (ensure_utc(reservation.expires_at) - utcnow()).total_seconds()
    return max(int(remaining), 0)


def _get_owned(db: Session, reservation_id: UUID, user_id: UUID) -> Reservation:
    reservation = db.query(Reservation).filter(Reservation.id == reservation_id).first()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    if reservation.user_id != user_id:
        raise AuthorizationError("Not authorized to modify this reservation")
    return reservation


def create_reservation(
    db: Session,
    user_id: UUID,
    court_id: UUID,
    start: datetime,
    end: datetime,
) -> Tuple[Reservation, bool]:
    """
    Place a hold on a court for [start, end).

    Returns (reservation, created). When the user already holds exactly this
    court window, the existing hold is returned with created=False.
    """
    start, end = ensure_utc(start), ensure_utc(end)
    now = utcnow()
    if end <= start:
        raise BookingValidationError("End time must be after start time", field="end_time")
    if start <= now:
        raise BookingValidationError("Cannot reserve a time slot in the past", field="start_time")

    try:
        lock_court(db, court_id)

        existing = db.query(Reservation).filter(
            Reservation.user_id == user_id,
            Reservation.court_id == court_id,
            Reservation.start_time == start,
            Reservation.end_time == end,
            Reservation.status == ReservationStatus.active,
            Reservation.expires_at > now,
        ).first()
        if existing:
            db.rollback()
            return existing, False

        reason = check_court_availability(db, court_id, start, end, exclude_user_id=user_id)
        if reason:
            raise SlotUnavailableError(reason)

        reservation = Reservation(
            user_id=user_id,
            court_id=court_id,
            start_time=start,
            end_time=end,
            status=ReservationStatus.active,
            expires_at=now + _ttl(),
        )
        db.add(reservation)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(reservation)
    logger.info(
        "Reservation %s: court %s held by user %s until %s",
        reservation.id, court_id, user_id, reservation.expires_at,
    )
    return reservation, True


def extend_reservation(db: Session, reservation_id: UUID, user_id: UUID) -> Reservation:
    """Reset a live hold's expiry to now + TTL."""
    reservation = _get_owned(db, reservation_id, user_id)
    if not is_live(reservation):
        raise BookingValidationError("Reservation is no longer active", field="reservation_id")

    reservation.expires_at = utcnow() + _ttl()
    db.commit()
    db.refresh(reservation)
    return reservation


def cancel_reservation(db: Session, reservation_id: UUID, user_id: UUID) -> Reservation:
    """Release a hold. Released holds are never reactivated."""
    reservation = _get_owned(db, reservation_id, user_id)
    reservation.status = ReservationStatus.released
    db.commit()
    db.refresh(reservation)
    return reservation


def release_user_holds(db: Session, user_id: UUID, court_id: UUID, start: datetime, end: datetime) -> int:
    """
    Release the user's live holds on a court that overlap [start, end).
    Does not commit; used by the booking allocator inside its transaction.
    """
    holds = db.query(Reservation).filter(
        Reservation.user_id == user_id,
        Reservation.court_id == court_id,
        Reservation.status == ReservationStatus.active,
        Reservation.expires_at > utcnow(),
        Reservation.start_time < end,
        Reservation.end_time > start,
    ).all()
    for hold in holds:
        hold.status = ReservationStatus.released
    return len(holds)


def get_user_reservations(db: Session, user_id: UUID, live_only: bool = True) -> List[Reservation]:
    query = db.query(Reservation).filter(Reservation.user_id == user_id)
    if live_only:
        query = query.filter(
            Reservation.status == ReservationStatus.active,
            Reservation.expires_at > utcnow(),
        )
    return query.order_by(Reservation.start_time.asc()).all()


def serialize_reservation(reservation: Reservation) -> ReservationSchema:
    return ReservationSchema(
        id=reservation.id,
        user_id=reservation.user_id,
        court_id=reservation.court_id,
        start_time=ensure_utc(reservation.start_time),
        end_time=ensure_utc(reservation.end_time),
        status=ReservationStatus(reservation.status).value,
        expires_at=ensure_utc(reservation.expires_at),
        created_at=reservation.created_at,
    )
