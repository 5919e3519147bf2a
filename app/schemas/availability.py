
from typing import List, Optional
from pydantic import BaseModel, Field, AliasChoices, UUID4
from datetime import date, datetime


# Requested (equipment, quantity) pair, shared by availability, pricing,
# bookings and waitlist requests
class EquipmentItem(BaseModel):
    equipment_id: UUID4 = Field(validation_alias=AliasChoices("equipment_id", "equipmentId", "item"))
    quantity: int = Field(1, ge=1)


# Availability check (POST /bookings/check-availability)
class AvailabilityRequest(BaseModel):
    court_id: UUID4 = Field(validation_alias=AliasChoices("court_id", "courtId"))
    coach_id: Optional[UUID4] = Field(None, validation_alias=AliasChoices("coach_id", "coachId"))
    equipment_items: List[EquipmentItem] = Field(
        default_factory=list, validation_alias=AliasChoices("equipment_items", "equipmentItems")
    )
    start_time: datetime = Field(validation_alias=AliasChoices("start_time", "startTime"))
    end_time: datetime = Field(validation_alias=AliasChoices("end_time", "endTime"))


class AvailabilityResult(BaseModel):
    available: bool
    reason: Optional[str] = None


# --- Court day grid (GET /courts/{id}/availability) ---

class CourtSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    available: bool


class CourtAvailabilityResponse(BaseModel):
    court_id: UUID4
    date: date
    slots: List[CourtSlot]
