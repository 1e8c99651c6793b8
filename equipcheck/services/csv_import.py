"""Bulk equipment import from CSV text.

Format
------
* Line 1 is the header. Column names are matched case-insensitively after
  stripping quotes and whitespace; unknown columns are ignored.
* ``type``, ``name`` and ``barcode`` must be present or nothing is imported.
* Fields are split on commas. There is no escaping: a quoted value cannot
  contain a comma, quotes are simply stripped.

Every data row is validated on its own. Bad rows are reported (row number +
message) and skipped; the good ones are written together in one batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.access import ActingUser, require_role
from ..core.errors import InvalidHeader, ValidationFailed
from ..core.timestamps import utcnow
from ..db.session import commit_or_raise
from ..models.equipment import Equipment
from ..models.sector import Sector
from .realtime import publish
from .validation import clean_equipment_fields

LOGGER = logging.getLogger(__name__)

# CSV column -> equipment attribute
COLUMNS = {
    "type": "type",
    "name": "name",
    "model": "model",
    "serialnumber": "serial_number",
    "description": "description",
    "barcode": "barcode",
    "sectorname": "sector_name",
}
REQUIRED_COLUMNS = ("type", "name", "barcode")

# Same text whether the barcode is already stored or repeated in the file.
DUPLICATE_BARCODE = "duplicate barcode"


@dataclass(frozen=True)
class RowMessage:
    row: int
    message: str
    level: str = "error"


@dataclass
class ImportResult:
    imported: int = 0
    duplicates: int = 0
    rejected: int = 0
    messages: list[RowMessage] = field(default_factory=list)

    @property
    def errors(self) -> list[RowMessage]:
        return [msg for msg in self.messages if msg.level == "error"]

    @property
    def warnings(self) -> list[RowMessage]:
        return [msg for msg in self.messages if msg.level == "warning"]


def _strip_cell(value: str) -> str:
    return value.strip().strip('"').strip("'").strip()


def parse_header(line: str) -> list[str]:
    columns = [_strip_cell(cell).lower() for cell in line.split(",")]
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise InvalidHeader(missing)
    return columns


def iter_rows(text: str) -> Iterator[tuple[int, dict[str, str]]]:
    """Yield ``(row_number, {attribute: value})`` for each non-blank data line.

    Row numbers follow the physical lines of the file with the header as
    row 1, so messages point at the line a person sees in a spreadsheet.
    """

    lines = (text or "").lstrip("\ufeff").splitlines()
    if not lines or not lines[0].strip():
        raise InvalidHeader(list(REQUIRED_COLUMNS))
    columns = parse_header(lines[0])

    for index, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        cells = [_strip_cell(cell) for cell in line.split(",")]
        values: dict[str, str] = {}
        for position, column in enumerate(columns):
            attribute = COLUMNS.get(column)
            if attribute is None:
                continue
            values[attribute] = cells[position] if position < len(cells) else ""
        yield index, values


def import_equipment_csv(db: Session, text: str, actor: ActingUser) -> ImportResult:
    require_role(actor)
    rows = list(iter_rows(text))

    sectors = {sector.name.strip().lower(): sector for sector in db.execute(select(Sector)).scalars().all()}
    existing = set(db.execute(select(Equipment.barcode)).scalars().all())
    staged: set[str] = set()
    result = ImportResult()
    pending: list[Equipment] = []
    now = utcnow()

    for row_number, values in rows:
        sector_label = (values.pop("sector_name", "") or "").strip()

        try:
            data = clean_equipment_fields(values)
        except ValidationFailed as exc:
            result.rejected += 1
            result.messages.append(RowMessage(row_number, exc.summary()))
            continue

        barcode = data["barcode"]
        if barcode in existing or barcode in staged:
            result.rejected += 1
            result.duplicates += 1
            result.messages.append(RowMessage(row_number, DUPLICATE_BARCODE))
            continue

        sector = sectors.get(sector_label.lower()) if sector_label else None
        if sector_label and sector is None:
            # Only rows that will actually be written get this warning.
            result.messages.append(
                RowMessage(row_number, f"sector '{sector_label}' not found; imported without sector", "warning")
            )

        staged.add(barcode)
        data["sector_id"] = sector.id if sector else None
        data["sector_name"] = sector.name if sector else None
        pending.append(Equipment(**data, created_at=now))

    if pending:
        db.add_all(pending)
        commit_or_raise(db, "equipment.import")
        result.imported = len(pending)
        publish(db, "equipments")

    LOGGER.info(
        "equipment.imported",
        extra={
            "extra_data": {
                "imported": result.imported,
                "rejected": result.rejected,
                "duplicates": result.duplicates,
                "actor": actor.uid,
            }
        },
    )
    return result
