# equipcheck/crud/equipment.py
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from ..core.access import ActingUser, require_role
from ..core.errors import DuplicateBarcode, NotFound
from ..core.timestamps import utcnow
from ..db.session import commit_or_raise
from ..models.equipment import Equipment
from ..models.sector import Sector
from ..services.realtime import publish
from ..services.validation import EQUIPMENT_TEXT_FIELDS, clean_equipment_fields

LOGGER = logging.getLogger(__name__)

EDITABLE_FIELDS = EQUIPMENT_TEXT_FIELDS + ("barcode", "sector_id")


def list_equipment(
    db: Session,
    *,
    sector_id: int | None = None,
    unchecked_only: bool = False,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[Equipment]:
    """
    Return equipment ordered by creation (newest first) with optional filters.

    ``search`` matches name, type, model and description case-insensitively
    and the barcode as a plain substring.
    """
    stmt = select(Equipment)
    if sector_id is not None:
        stmt = stmt.where(Equipment.sector_id == sector_id)
    if unchecked_only:
        stmt = stmt.where(Equipment.last_checked_at.is_(None))
    term = (search or "").strip()
    if term:
        lowered = term.lower()
        stmt = stmt.where(
            or_(
                func.lower(Equipment.name).contains(lowered),
                func.lower(Equipment.type).contains(lowered),
                func.lower(func.coalesce(Equipment.model, "")).contains(lowered),
                func.lower(func.coalesce(Equipment.description, "")).contains(lowered),
                Equipment.barcode.contains(term),
            )
        )
    stmt = stmt.order_by(desc(Equipment.created_at), desc(Equipment.id)).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return db.execute(stmt).scalars().all()


def get_equipment(db: Session, item_id: int) -> Equipment | None:
    return db.get(Equipment, item_id)


def find_by_barcode(db: Session, barcode: str, exclude_id: int | None = None) -> Equipment | None:
    stmt = select(Equipment).where(Equipment.barcode == barcode)
    if exclude_id is not None:
        stmt = stmt.where(Equipment.id != exclude_id)
    return db.execute(stmt).scalars().first()


def resolve_sector(db: Session, sector_id: int | None) -> tuple[int | None, str | None]:
    """Return ``(sector_id, sector_name)``; unknown ids clear both."""

    if sector_id is None:
        return None, None
    sector = db.get(Sector, sector_id)
    if sector is None:
        return None, None
    return sector.id, sector.name


def create_equipment(db: Session, payload: dict, actor: ActingUser) -> Equipment:
    """
    Validate, de-duplicate and persist a new equipment record.
    """
    require_role(actor)
    data = clean_equipment_fields(payload)
    if find_by_barcode(db, data["barcode"]):
        raise DuplicateBarcode(data["barcode"])

    data["sector_id"], data["sector_name"] = resolve_sector(db, data.get("sector_id"))
    item = Equipment(**data, created_at=utcnow())
    db.add(item)
    commit_or_raise(db, "equipment.create", on_conflict=lambda: DuplicateBarcode(data["barcode"]))
    db.refresh(item)
    LOGGER.info(
        "equipment.created",
        extra={"extra_data": {"equipment_id": item.id, "barcode": item.barcode, "actor": actor.uid}},
    )
    publish(db, "equipments")
    return item


def update_equipment(db: Session, item_id: int, payload: dict, actor: ActingUser) -> Equipment:
    """
    Merge ``payload`` onto the stored record, re-validate and save.

    Keys absent from the payload keep their stored value; an explicit
    ``sector_id`` of ``None`` removes the sector. The duplicate check ignores
    the record itself so saving an unchanged barcode is fine.
    """
    require_role(actor)
    item = db.get(Equipment, item_id)
    if item is None:
        raise NotFound("Equipment not found")

    merged = {field: getattr(item, field) for field in EDITABLE_FIELDS}
    merged.update({k: v for k, v in payload.items() if k in EDITABLE_FIELDS})
    data = clean_equipment_fields(merged)
    if find_by_barcode(db, data["barcode"], exclude_id=item.id):
        raise DuplicateBarcode(data["barcode"])

    data["sector_id"], data["sector_name"] = resolve_sector(db, data.get("sector_id"))
    for key, value in data.items():
        setattr(item, key, value)
    commit_or_raise(db, "equipment.update", on_conflict=lambda: DuplicateBarcode(data["barcode"]))
    db.refresh(item)
    LOGGER.info("equipment.updated", extra={"extra_data": {"equipment_id": item.id, "actor": actor.uid}})
    publish(db, "equipments")
    return item


def delete_equipment(db: Session, item_id: int, actor: ActingUser) -> None:
    """
    Delete one record. Audit records referencing it are left as they are.
    """
    require_role(actor)
    item = db.get(Equipment, item_id)
    if item is None:
        raise NotFound("Equipment not found")
    db.delete(item)
    commit_or_raise(db, "equipment.delete")
    LOGGER.info("equipment.deleted", extra={"extra_data": {"equipment_id": item_id, "actor": actor.uid}})
    publish(db, "equipments")


def delete_equipments(db: Session, item_ids: Iterable[int], actor: ActingUser) -> int:
    """
    Delete several records in one batch; unknown ids are skipped.
    """
    require_role(actor)
    ids = sorted(set(item_ids))
    if not ids:
        return 0
    rows = db.execute(select(Equipment).where(Equipment.id.in_(ids))).scalars().all()
    if not rows:
        return 0
    for row in rows:
        db.delete(row)
    commit_or_raise(db, "equipment.delete_many")
    LOGGER.info("equipment.deleted_many", extra={"extra_data": {"count": len(rows), "actor": actor.uid}})
    publish(db, "equipments")
    return len(rows)


def clear_conference_status(db: Session, actor: ActingUser, sector_id: int | None = None) -> int:
    """
    Remove ``last_checked_at`` from every checked record in scope.

    The scope is all equipment, or only the equipment of ``sector_id``. All
    matching rows are cleared in one batch; an empty scope is not an error.
    """
    require_role(actor)
    stmt = select(Equipment).where(Equipment.last_checked_at.is_not(None))
    if sector_id is not None:
        stmt = stmt.where(Equipment.sector_id == sector_id)
    rows = db.execute(stmt).scalars().all()
    if not rows:
        return 0
    for row in rows:
        row.last_checked_at = None
    commit_or_raise(db, "equipment.clear_conference")
    LOGGER.info(
        "equipment.conference_cleared",
        extra={"extra_data": {"count": len(rows), "sector_id": sector_id, "actor": actor.uid}},
    )
    publish(db, "equipments")
    return len(rows)


def repair_sector_names(db: Session, actor: ActingUser) -> int:
    """
    Re-copy current sector names onto equipment whose copy went stale.

    Records pointing at a sector that no longer exists lose both sector
    fields. Returns the number of rows changed.
    """
    require_role(actor)
    names = {sector.id: sector.name for sector in db.execute(select(Sector)).scalars().all()}
    rows = db.execute(select(Equipment).where(Equipment.sector_id.is_not(None))).scalars().all()
    repaired = 0
    for row in rows:
        if row.sector_id not in names:
            row.sector_id = None
            row.sector_name = None
            repaired += 1
        elif row.sector_name != names[row.sector_id]:
            row.sector_name = names[row.sector_id]
            repaired += 1
    if not repaired:
        return 0
    commit_or_raise(db, "equipment.repair_sector_names")
    LOGGER.info("equipment.sector_names_repaired", extra={"extra_data": {"count": repaired, "actor": actor.uid}})
    publish(db, "equipments")
    return repaired
