from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user, get_optional_user
from app.models.user import User
from app.schemas.availability import AvailabilityRequest, AvailabilityResult
from app.schemas.booking import Booking as BookingSchema, BookingCreate, BookingUpdate
from app.schemas.common import PaginatedResponse
from app.schemas.pricing import PricePreviewRequest, PricingBreakdown
from app.services import bookings as booking_service
from app.services.availability import check_availability
from app.services.pricing import calculate_price

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# POST /bookings/check-availability
# ---------------------------------------------------------------------------


@router.post("/check-availability", response_model=AvailabilityResult)
def check_booking_availability(
    data: AvailabilityRequest,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Check whether a court, and optionally a coach and equipment, are free for
    a window. Read-only; the answer may be stale by the time a booking is made.
    Holds placed by the caller do not count against them.
    """
    return check_availability(
        db,
        court_id=data.court_id,
        coach_id=data.coach_id,
        equipment_items=data.equipment_items,
        start=data.start_time,
        end=data.end_time,
        exclude_user_id=current_user.id if current_user else None,
    )


# ---------------------------------------------------------------------------
# POST /bookings/preview-price
# ---------------------------------------------------------------------------


@router.post("/preview-price", response_model=PricingBreakdown)
def preview_price(
    data: PricePreviewRequest,
    db: Session = Depends(get_db),
):
    """Price a prospective booking under the currently active pricing rules."""
    return calculate_price(
        db, data.court_id, data.equipment_items, data.coach_id, data.start_time, data.end_time
    )


# ---------------------------------------------------------------------------
# POST /bookings
# ---------------------------------------------------------------------------


@router.post("/", response_model=BookingSchema, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Book a court, with optional coach and equipment.

    - Availability is re-checked with the resources locked; a taken slot
      returns 409.
    - The caller's own soft holds on the court don't block them and are
      released once the booking is confirmed.
    - Price is frozen into the booking at creation time.
    """
    booking = booking_service.create_booking(db, current_user.id, data)
    return booking_service.serialize_booking(booking)


# ---------------------------------------------------------------------------
# GET /bookings
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[BookingSchema])
def list_my_bookings(
    status: Optional[str] = Query(
        None, description="Filter by status: confirmed, cancelled, completed, pending"
    ),
    start_date: Optional[date] = Query(None, description="Bookings starting on or after this date"),
    end_date: Optional[date] = Query(None, description="Bookings starting on or before this date"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return the authenticated user's bookings, latest first."""
    bookings, total = booking_service.get_user_bookings(
        db, current_user.id, status=status, start_date=start_date, end_date=end_date,
        page=page, limit=limit,
    )
    return PaginatedResponse(
        data=[booking_service.serialize_booking(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# GET /bookings/{id}
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return a single booking. Only the owner or an admin can access it."""
    booking = booking_service.get_booking_by_id(db, booking_id, current_user.id, current_user.is_admin)
    return booking_service.serialize_booking(booking)


# ---------------------------------------------------------------------------
# PUT /bookings/{id}
# ---------------------------------------------------------------------------


@router.put("/{booking_id}", response_model=BookingSchema)
def update_booking(
    booking_id: UUID,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Reschedule a booking or edit its notes.

    Send the `version` you last read to guard against overwriting a
    concurrent change; a mismatch returns 409 and leaves the booking as is.
    """
    booking = booking_service.update_booking(
        db, booking_id, current_user.id, data, current_user.is_admin
    )
    return booking_service.serialize_booking(booking)


# ---------------------------------------------------------------------------
# PATCH /bookings/{id}/cancel
# ---------------------------------------------------------------------------


@router.patch("/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Cancel a booking.
    - Frees the court, coach and equipment for the window.
    - Offers the slot to the first user on its waitlist.
    """
    booking = booking_service.cancel_booking(db, booking_id, current_user.id, current_user.is_admin)
    return booking_service.serialize_booking(booking)
