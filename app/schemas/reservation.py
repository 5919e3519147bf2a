
from typing import Optional
from pydantic import BaseModel, Field, AliasChoices, UUID4
from datetime import datetime


# Reservation — soft hold request (POST /reservations)
class ReservationCreate(BaseModel):
    court_id: UUID4 = Field(validation_alias=AliasChoices("court_id", "courtId"))
    start_time: datetime = Field(validation_alias=AliasChoices("start_time", "startTime"))
    end_time: datetime = Field(validation_alias=AliasChoices("end_time", "endTime"))


class Reservation(BaseModel):
    id: UUID4
    user_id: UUID4
    court_id: UUID4
    start_time: datetime
    end_time: datetime
    status: str
    expires_at: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReservationResponse(BaseModel):
    reservation: Reservation
    expires_in: int  # seconds
    message: Optional[str] = None


class ReservationReleaseResponse(BaseModel):
    id: UUID4
    status: str
    message: str
