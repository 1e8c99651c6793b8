"""Sector registry."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.access import ActingUser, require_role
from ..core.errors import NotFound, SectorInUse
from ..core.timestamps import utcnow
from ..db.session import commit_or_raise
from ..models.equipment import Equipment
from ..models.sector import Sector
from ..services.realtime import publish
from ..services.validation import clean_sector_name

LOGGER = logging.getLogger(__name__)


def list_sectors(db: Session, search: str | None = None) -> list[Sector]:
    """Sectors ordered by name, case-insensitively, optionally filtered."""

    stmt = select(Sector)
    term = (search or "").strip().lower()
    if term:
        stmt = stmt.where(func.lower(Sector.name).contains(term))
    stmt = stmt.order_by(func.lower(Sector.name), Sector.id)
    return db.execute(stmt).scalars().all()


def get_sector(db: Session, sector_id: int) -> Sector | None:
    return db.get(Sector, sector_id)


def create_sector(db: Session, payload: dict, actor: ActingUser) -> Sector:
    require_role(actor)
    name = clean_sector_name(payload.get("name"))
    sector = Sector(name=name, created_at=utcnow())
    db.add(sector)
    commit_or_raise(db, "sector.create")
    db.refresh(sector)
    LOGGER.info("sector.created", extra={"extra_data": {"sector_id": sector.id}})
    publish(db, "sectors")
    return sector


def update_sector(db: Session, sector_id: int, payload: dict, actor: ActingUser) -> Sector:
    """Rename a sector.

    Equipment rows and audit records keep the name they were written with;
    the rename only reaches them on their next write or through
    ``repair_sector_names``.
    """

    require_role(actor)
    name = clean_sector_name(payload.get("name"))
    sector = db.get(Sector, sector_id)
    if sector is None:
        raise NotFound("Sector not found")
    sector.name = name
    commit_or_raise(db, "sector.update")
    db.refresh(sector)
    LOGGER.info("sector.updated", extra={"extra_data": {"sector_id": sector.id}})
    publish(db, "sectors")
    return sector


def count_sector_equipment(db: Session, sector_id: int) -> int:
    stmt = select(func.count(Equipment.id)).where(Equipment.sector_id == sector_id)
    return int(db.execute(stmt).scalar_one())


def delete_sector(db: Session, sector_id: int, actor: ActingUser) -> None:
    """Delete an unreferenced sector; raise ``SectorInUse`` otherwise.

    The reference count and the delete are separate steps, so an equipment
    reassigned in between can still end up pointing at a deleted sector.
    """

    require_role(actor)
    sector = db.get(Sector, sector_id)
    if sector is None:
        raise NotFound("Sector not found")
    in_use = count_sector_equipment(db, sector_id)
    if in_use:
        raise SectorInUse(in_use)
    db.delete(sector)
    commit_or_raise(db, "sector.delete")
    LOGGER.info("sector.deleted", extra={"extra_data": {"sector_id": sector_id}})
    publish(db, "sectors")
