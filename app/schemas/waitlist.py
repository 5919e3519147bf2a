
from typing import List, Optional
from pydantic import BaseModel, Field, AliasChoices, UUID4, field_validator
from datetime import date, datetime

from app.schemas.availability import EquipmentItem


def _hhmm(v: str) -> str:
    hours, _, minutes = v.partition(":")
    if not (hours.isdigit() and minutes.isdigit() and len(minutes) == 2):
        raise ValueError("time must be formatted as HH:MM")
    h, m = int(hours), int(minutes)
    if h > 23 or m > 59:
        raise ValueError("time must be a valid wall-clock time")
    return f"{h:02d}:{m:02d}"


# Waitlist — join (POST /waitlist)
class WaitlistCreate(BaseModel):
    court_id: UUID4 = Field(validation_alias=AliasChoices("court_id", "courtId"))
    desired_date: date = Field(validation_alias=AliasChoices("desired_date", "desiredDate"))
    desired_start_time: str = Field(validation_alias=AliasChoices("desired_start_time", "desiredStartTime"))
    desired_end_time: str = Field(validation_alias=AliasChoices("desired_end_time", "desiredEndTime"))
    equipment_items: List[EquipmentItem] = Field(
        default_factory=list, validation_alias=AliasChoices("equipment_items", "equipmentItems")
    )
    coach_id: Optional[UUID4] = Field(None, validation_alias=AliasChoices("coach_id", "coachId"))
    phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None

    @field_validator("desired_start_time", "desired_end_time")
    @classmethod
    def normalise_time(cls, v: str) -> str:
        return _hhmm(v)


# Waitlist — notify next (POST /waitlist/notify-next)
class WaitlistSlot(BaseModel):
    court_id: UUID4 = Field(validation_alias=AliasChoices("court_id", "courtId"))
    date: date
    start_time: str = Field(validation_alias=AliasChoices("start_time", "startTime"))
    end_time: str = Field(validation_alias=AliasChoices("end_time", "endTime"))

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_time(cls, v: str) -> str:
        return _hhmm(v)


class WaitlistEquipment(BaseModel):
    equipment_id: str
    quantity: int


class WaitlistEntry(BaseModel):
    id: UUID4
    user_id: UUID4
    court_id: UUID4
    desired_date: date
    desired_start_time: str
    desired_end_time: str
    equipment: List[WaitlistEquipment] = []
    coach_id: Optional[UUID4] = None
    notes: Optional[str] = None
    position: int
    status: str
    expires_at: datetime
    notified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
