from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_optional_user
from app.models.user import User
from app.schemas.availability import CourtAvailabilityResponse
from app.services.availability import get_available_slots

router = APIRouter(prefix="/courts", tags=["Courts"])


@router.get("/{court_id}/availability", response_model=CourtAvailabilityResponse)
def court_availability(
    court_id: UUID,
    day: date = Query(..., alias="date", description="Facility date, YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Hourly slot grid for a court between opening and closing time.

    Signed-in callers see slots they are holding themselves as available.
    """
    slots = get_available_slots(db, court_id, day, user_id=current_user.id if current_user else None)
    return CourtAvailabilityResponse(court_id=court_id, date=day, slots=slots)
