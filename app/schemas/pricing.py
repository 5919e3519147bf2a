
from typing import Dict, List, Optional, Type, Union
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, UUID4, field_validator
from decimal import Decimal
from datetime import date, datetime

from app.models.pricing_rule import PricingRuleType
from app.schemas.availability import EquipmentItem


# --- Rule conditions: one variant per rule type ---------------------------
# Payloads are stored as JSON; both snake_case and camelCase keys are accepted.

class _Conditions(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TimeBasedConditions(_Conditions):
    start_hour: Optional[int] = Field(None, ge=0, le=24, validation_alias=AliasChoices("start_hour", "startHour"))
    end_hour: Optional[int] = Field(None, ge=0, le=24, validation_alias=AliasChoices("end_hour", "endHour"))


class DayBasedConditions(_Conditions):
    # 0 = Sunday ... 6 = Saturday
    days_of_week: List[int] = Field(default_factory=list, validation_alias=AliasChoices("days_of_week", "daysOfWeek"))


class CourtTypeConditions(_Conditions):
    court_types: List[str] = Field(default_factory=list, validation_alias=AliasChoices("court_types", "courtTypes"))


class SeasonalConditions(_Conditions):
    start_date: Optional[date] = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: Optional[date] = Field(None, validation_alias=AliasChoices("end_date", "endDate"))

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def take_date_part(cls, v):
        # Accept full ISO timestamps ("2025-12-01T00:00:00.000Z")
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v


class CustomConditions(_Conditions):
    model_config = ConfigDict(extra="allow")


RuleConditions = Union[
    TimeBasedConditions, DayBasedConditions, CourtTypeConditions, SeasonalConditions, CustomConditions
]

CONDITIONS_BY_TYPE: Dict[PricingRuleType, Type[_Conditions]] = {
    PricingRuleType.time_based: TimeBasedConditions,
    PricingRuleType.day_based: DayBasedConditions,
    PricingRuleType.court_type: CourtTypeConditions,
    PricingRuleType.seasonal: SeasonalConditions,
    PricingRuleType.custom: CustomConditions,
}


def parse_conditions(rule_type, payload: Optional[dict]) -> RuleConditions:
    """Parse a stored conditions payload into the variant for `rule_type`."""
    return CONDITIONS_BY_TYPE[PricingRuleType(rule_type)].model_validate(payload or {})


# --- Price calculation -----------------------------------------------------

class AppliedRule(BaseModel):
    rule_id: str
    name: str
    multiplier: float


class PricingBreakdown(BaseModel):
    court_fee: Decimal
    equipment_fee: Decimal
    coach_fee: Decimal
    base_total: Decimal
    applied_rules: List[AppliedRule] = []
    final_total: Decimal
    duration: float  # hours


# Price preview (POST /bookings/preview-price)
class PricePreviewRequest(BaseModel):
    court_id: UUID4 = Field(validation_alias=AliasChoices("court_id", "courtId"))
    coach_id: Optional[UUID4] = Field(None, validation_alias=AliasChoices("coach_id", "coachId"))
    equipment_items: List[EquipmentItem] = Field(
        default_factory=list, validation_alias=AliasChoices("equipment_items", "equipmentItems")
    )
    start_time: datetime = Field(validation_alias=AliasChoices("start_time", "startTime"))
    end_time: datetime = Field(validation_alias=AliasChoices("end_time", "endTime"))
