"""Read side of the conference audit log. Records are never edited here."""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..models.conference import ConferenceRecord


def list_conferences(
    db: Session,
    equipment_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[ConferenceRecord]:
    """Newest first, optionally limited to one equipment id."""

    stmt = select(ConferenceRecord)
    if equipment_id is not None:
        stmt = stmt.where(ConferenceRecord.equipment_id == equipment_id)
    stmt = (
        stmt.order_by(desc(ConferenceRecord.checked_at), desc(ConferenceRecord.id))
        .limit(limit)
        .offset(offset)
    )
    return db.execute(stmt).scalars().all()
