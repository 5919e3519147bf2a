"""
Row locks that make "check availability, then write" one atomic step.

Every writer of bookings / reservations / waitlist queues locks the rows of
the resources it is about to claim before it re-checks availability. Locks
are taken in a fixed order (court, coach, equipment sorted by id) so two
writers touching overlapping resource sets cannot deadlock. They are held
until the surrounding transaction commits or rolls back.
"""

from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.court import Court
from app.models.coach import Coach
from app.models.equipment import Equipment
from app.services.exceptions import NotFoundError


def lock_court(db: Session, court_id: UUID) -> Court:
    court = db.query(Court).filter(Court.id == court_id).with_for_update().first()
    if not court:
        raise NotFoundError("Court", court_id)
    return court


def lock_resources(
    db: Session,
    court_id: UUID,
    coach_id: Optional[UUID] = None,
    equipment_ids: Iterable[UUID] = (),
) -> Court:
    """Lock court, coach and equipment rows for the rest of the transaction."""
    court = lock_court(db, court_id)

    if coach_id:
        coach = db.query(Coach).filter(Coach.id == coach_id).with_for_update().first()
        if not coach:
            raise NotFoundError("Coach", coach_id)

    ids: List[UUID] = sorted(set(equipment_ids), key=str)
    if ids:
        found = (
            db.query(Equipment.id)
            .filter(Equipment.id.in_(ids))
            .order_by(Equipment.id)
            .with_for_update()
            .all()
        )
        missing = set(ids) - {row.id for row in found}
        if missing:
            raise NotFoundError("Equipment", sorted(missing, key=str)[0])

    return court
