from uuid import UUID
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_user, get_current_admin_user
from app.models.user import User
from app.schemas.waitlist import WaitlistCreate, WaitlistEntry as WaitlistEntrySchema, WaitlistSlot
from app.services import waitlist as waitlist_service

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


@router.post("/", response_model=WaitlistEntrySchema, status_code=status.HTTP_201_CREATED)
def join_waitlist(
    data: WaitlistCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Queue for a court slot that is currently taken.
    If the booking holding it is cancelled, the first user in the queue is
    booked automatically.
    """
    entry = waitlist_service.join_waitlist(db, current_user.id, data)
    return waitlist_service.serialize_entry(entry)


@router.get("/", response_model=List[WaitlistEntrySchema])
def list_my_waitlist(
    status: Optional[str] = Query(
        "waiting", description="Filter by status: waiting, notified, converted, expired"
    ),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    entries = waitlist_service.get_user_waitlist(db, current_user.id, status=status)
    return [waitlist_service.serialize_entry(e) for e in entries]


@router.delete("/{entry_id}")
def leave_waitlist(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    waitlist_service.leave_waitlist(db, entry_id, current_user.id, current_user.is_admin)
    return {"message": "Removed from waitlist"}


@router.post("/notify-next", response_model=WaitlistEntrySchema)
def notify_next(
    data: WaitlistSlot,
    db: Session = Depends(get_db),
    _admin: User = Depends(get_current_admin_user),
):
    """Email the first waiting user that the slot is free, without booking it for them."""
    entry = waitlist_service.notify_next(db, data.court_id, data.date, data.start_time, data.end_time)
    return waitlist_service.serialize_entry(entry)
