"""
Pricing engine.

Price = (court + equipment + coach hourly fees) × duration, then every active
pricing rule whose condition matches the booking is applied. Multipliers stack
multiplicatively; the recorded `applied_rules` list follows priority order
(highest first, ties in creation order).
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.models.court import Court, CourtType
from app.models.coach import Coach
from app.models.equipment import Equipment
from app.models.pricing_rule import PricingRule
from app.schemas.availability import EquipmentItem
from app.schemas.pricing import (
    AppliedRule,
    PricingBreakdown,
    TimeBasedConditions,
    DayBasedConditions,
    CourtTypeConditions,
    SeasonalConditions,
    parse_conditions,
)
from app.services.exceptions import BookingValidationError, NotFoundError
from app.utils.timeslots import ensure_utc, to_local

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _weekday_sunday_first(value: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


def rule_applies(rule: PricingRule, local_start: datetime, court_type: str) -> bool:
    """Evaluate a rule's condition against the booking's local start time and court type."""
    try:
        conditions = parse_conditions(rule.type, rule.conditions)
    except ValidationError as exc:
        logger.warning("Pricing rule %s (%s) has invalid conditions, skipping: %s", rule.id, rule.name, exc)
        return False

    if isinstance(conditions, TimeBasedConditions):
        if conditions.start_hour is None or conditions.end_hour is None:
            return False
        return conditions.start_hour <= local_start.hour < conditions.end_hour

    if isinstance(conditions, DayBasedConditions):
        if not conditions.days_of_week:
            return True
        return _weekday_sunday_first(local_start) in conditions.days_of_week

    if isinstance(conditions, CourtTypeConditions):
        return bool(conditions.court_types) and court_type in conditions.court_types

    if isinstance(conditions, SeasonalConditions):
        if conditions.start_date is None or conditions.end_date is None:
            return False
        return conditions.start_date <= local_start.date() <= conditions.end_date

    # custom: extension point, never applies
    return False


def get_active_rules(db: Session) -> List[PricingRule]:
    return (
        db.query(PricingRule)
        .filter(PricingRule.active == True)  # noqa: E712
        .order_by(PricingRule.priority.desc(), PricingRule.created_at.asc(), PricingRule.id.asc())
        .all()
    )


def calculate_price(
    db: Session,
    court_id: UUID,
    equipment_items: Iterable[EquipmentItem],
    coach_id: Optional[UUID],
    start: datetime,
    end: datetime,
) -> PricingBreakdown:
    """
    Price a court (+ equipment, + coach) for [start, end).

    Raises NotFoundError for any missing court / equipment / coach and
    BookingValidationError for an empty or inverted window.
    """
    start, end = ensure_utc(start), ensure_utc(end)
    if end <= start:
        raise BookingValidationError("End time must be after start time", field="end_time")

    seconds = Decimal((end - start).total_seconds())
    hours = seconds / Decimal(3600)

    court = db.query(Court).filter(Court.id == court_id).first()
    if not court:
        raise NotFoundError("Court", court_id)
    court_fee = Decimal(court.hourly_base_rate) * hours

    equipment_fee = Decimal(0)
    for item in equipment_items:
        equipment = db.query(Equipment).filter(Equipment.id == item.equipment_id).first()
        if not equipment:
            raise NotFoundError("Equipment", item.equipment_id)
        equipment_fee += Decimal(equipment.hourly_rate) * item.quantity * hours

    coach_fee = Decimal(0)
    if coach_id:
        coach = db.query(Coach).filter(Coach.id == coach_id).first()
        if not coach:
            raise NotFoundError("Coach", coach_id)
        coach_fee = Decimal(coach.hourly_rate) * hours

    base_total = court_fee + equipment_fee + coach_fee

    local_start = to_local(start)
    court_type = CourtType(court.type).value
    applied: List[AppliedRule] = []
    final_total = base_total
    for rule in get_active_rules(db):
        if rule_applies(rule, local_start, court_type):
            applied.append(AppliedRule(rule_id=str(rule.id), name=rule.name, multiplier=rule.multiplier))
            final_total *= Decimal(str(rule.multiplier))

    if applied:
        logger.debug(
            "Court %s %s: applied %s",
            court_id, local_start.isoformat(), ", ".join(f"{r.name} x{r.multiplier}" for r in applied),
        )

    return PricingBreakdown(
        court_fee=round_money(court_fee),
        equipment_fee=round_money(equipment_fee),
        coach_fee=round_money(coach_fee),
        base_total=round_money(base_total),
        applied_rules=applied,
        final_total=round_money(final_total),
        duration=float(seconds) / 3600,
    )
