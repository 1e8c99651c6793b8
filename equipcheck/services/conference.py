"""Barcode conference: confirm an item is physically present and log it.

The scanned code is compared with the *cached* equipment snapshot, not a
fresh query, so an item created or deleted a moment ago may not be visible
yet. A hit becomes one batch: the equipment's ``last_checked_at`` moves to
now and a new audit record is appended. Scanning the same code twice moves
the timestamp twice and leaves two audit records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.access import ActingUser, require_role
from ..core.barcodes import barcodes_match, clean_barcode
from ..core.errors import ValidationFailed
from ..core.timestamps import utcnow
from ..models.conference import ConferenceRecord
from ..models.equipment import Equipment
from ..schemas.equipment import EquipmentOut
from .realtime import SnapshotCache, publish

LOGGER = logging.getLogger(__name__)

CHECKED = "checked"
NOT_FOUND = "not_found"
FAILED = "failed"


@dataclass(frozen=True)
class ConferenceOutcome:
    status: str
    barcode: str
    equipment: Optional[EquipmentOut] = None
    record_id: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def checked(cls, barcode: str, equipment: EquipmentOut, record_id: int) -> "ConferenceOutcome":
        return cls(status=CHECKED, barcode=barcode, equipment=equipment, record_id=record_id)

    @classmethod
    def not_found(cls, barcode: str) -> "ConferenceOutcome":
        return cls(status=NOT_FOUND, barcode=barcode)

    @classmethod
    def failed(cls, barcode: str, reason: str) -> "ConferenceOutcome":
        return cls(status=FAILED, barcode=barcode, reason=reason)


class ConferenceEngine:
    def __init__(self, cache: SnapshotCache) -> None:
        self.cache = cache

    def match(self, code: str) -> EquipmentOut | None:
        for item in self.cache.equipments:
            if barcodes_match(code, item.barcode):
                return item
        return None

    def check_barcode(self, db: Session, code: str | None, actor: ActingUser) -> ConferenceOutcome:
        require_role(actor)
        barcode = clean_barcode(code)
        if not barcode:
            raise ValidationFailed({"barcode": "barcode is required"})

        found = self.match(barcode)
        if found is None:
            LOGGER.info("conference.not_found", extra={"extra_data": {"barcode": barcode, "actor": actor.uid}})
            return ConferenceOutcome.not_found(barcode)

        try:
            item = db.get(Equipment, found.id)
            if item is None:
                # Deleted after the snapshot we matched against was taken.
                LOGGER.warning(
                    "conference.stale_match",
                    extra={"extra_data": {"barcode": barcode, "equipment_id": found.id}},
                )
                return ConferenceOutcome.failed(barcode, "equipment no longer exists")

            now = utcnow()
            item.last_checked_at = now
            record = ConferenceRecord(
                equipment_id=item.id,
                barcode=item.barcode,
                equipment_name=item.name,
                equipment_type=item.type,
                sector_id=item.sector_id,
                sector_name=item.sector_name,
                user_id=actor.uid,
                user_email=actor.email,
                checked_at=now,
            )
            db.add(record)
            # Flush for the record id, then take the outcome snapshot before
            # commit so nothing after the commit needs the store.
            db.flush()
            checked = EquipmentOut.model_validate(item)
            record_id = record.id
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("conference.failed", extra={"extra_data": {"barcode": barcode}})
            return ConferenceOutcome.failed(barcode, f"store error: {exc.__class__.__name__}")

        LOGGER.info(
            "conference.checked",
            extra={"extra_data": {"barcode": barcode, "equipment_id": checked.id, "record_id": record_id, "actor": actor.uid}},
        )
        publish(db, "equipments", "conferences")
        return ConferenceOutcome.checked(barcode, checked, record_id)
