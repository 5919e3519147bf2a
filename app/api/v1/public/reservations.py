from uuid import UUID
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user
from app.models.user import User
from app.schemas.reservation import (
    Reservation as ReservationSchema,
    ReservationCreate,
    ReservationReleaseResponse,
    ReservationResponse,
)
from app.services import reservations as reservation_service

router = APIRouter(prefix="/reservations", tags=["Reservations"])


# ---------------------------------------------------------------------------
# POST /reservations — place a soft hold
# ---------------------------------------------------------------------------


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Hold a court window while the booking form is completed.
    - Other users see the court as taken until the hold expires.
    - Repeating the same request returns the existing hold (200).
    """
    reservation, created = reservation_service.create_reservation(
        db, current_user.id, data.court_id, data.start_time, data.end_time
    )
    if not created:
        response.status_code = status.HTTP_200_OK

    return ReservationResponse(
        reservation=reservation_service.serialize_reservation(reservation),
        expires_in=reservation_service.expires_in(reservation),
        message="Slot reserved" if created else "You already hold this slot",
    )


# ---------------------------------------------------------------------------
# GET /reservations — current user's holds
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[ReservationSchema])
def list_my_reservations(
    live_only: bool = Query(True, description="Only holds that are active and unexpired"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reservations = reservation_service.get_user_reservations(db, current_user.id, live_only=live_only)
    return [reservation_service.serialize_reservation(r) for r in reservations]


# ---------------------------------------------------------------------------
# PUT /reservations/{id}/extend
# ---------------------------------------------------------------------------


@router.put("/{reservation_id}/extend", response_model=ReservationResponse)
def extend_reservation(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Restart the hold's timer. Only live holds can be extended."""
    reservation = reservation_service.extend_reservation(db, reservation_id, current_user.id)
    return ReservationResponse(
        reservation=reservation_service.serialize_reservation(reservation),
        expires_in=reservation_service.expires_in(reservation),
        message="Reservation extended",
    )


# ---------------------------------------------------------------------------
# DELETE /reservations/{id}
# ---------------------------------------------------------------------------


@router.delete("/{reservation_id}", response_model=ReservationReleaseResponse)
def release_reservation(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reservation = reservation_service.cancel_reservation(db, reservation_id, current_user.id)
    return ReservationReleaseResponse(
        id=reservation.id,
        status=reservation_service.serialize_reservation(reservation).status,
        message="Reservation released",
    )
