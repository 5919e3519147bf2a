
from typing import Optional, List
from pydantic import BaseModel, Field, AliasChoices, UUID4, field_validator
from decimal import Decimal
from datetime import datetime

from app.schemas.availability import EquipmentItem
from app.schemas.pricing import AppliedRule


# Booking — Create (POST /bookings)
class BookingCreate(BaseModel):
    court_id: UUID4 = Field(validation_alias=AliasChoices("court_id", "courtId"))
    coach_id: Optional[UUID4] = Field(None, validation_alias=AliasChoices("coach_id", "coachId"))
    equipment_items: List[EquipmentItem] = Field(
        default_factory=list, max_length=20, validation_alias=AliasChoices("equipment_items", "equipmentItems")
    )
    start_time: datetime = Field(validation_alias=AliasChoices("start_time", "startTime"))
    end_time: datetime = Field(validation_alias=AliasChoices("end_time", "endTime"))
    notes: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("coach_id", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if v == "":
            return None
        return v


# Booking — Reschedule / edit (PUT /bookings/{id})
class BookingUpdate(BaseModel):
    start_time: Optional[datetime] = Field(None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: Optional[datetime] = Field(None, validation_alias=AliasChoices("end_time", "endTime"))
    notes: Optional[str] = None
    # Optimistic concurrency token; when sent it must match the stored version
    version: Optional[int] = None


# Nested response objects for booking responses
class BookingEquipmentResponse(BaseModel):
    equipment_id: UUID4
    name: Optional[str] = None
    quantity: int


class BookingCourtSummary(BaseModel):
    id: UUID4
    name: str
    type: str


class BookingPricing(BaseModel):
    court_fee: Decimal
    equipment_fee: Decimal
    coach_fee: Decimal
    base_total: Decimal
    applied_rules: List[AppliedRule] = []
    final_total: Decimal


# Booking — Full response (POST /bookings, GET /bookings/{id})
class Booking(BaseModel):
    id: UUID4
    user_id: UUID4
    court_id: UUID4
    coach_id: Optional[UUID4] = None
    start_time: datetime
    end_time: datetime
    duration: float
    pricing: BookingPricing
    status: str
    version: int
    phone: Optional[str] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    court: Optional[BookingCourtSummary] = None
    equipment: List[BookingEquipmentResponse] = []

    class Config:
        from_attributes = True
