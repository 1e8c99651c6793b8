"""Field rules shared by the equipment form, the API and the CSV import."""

from __future__ import annotations

from typing import Any, Mapping

from ..core.barcodes import MIN_BARCODE_LENGTH, clean_barcode
from ..core.errors import ValidationFailed

EQUIPMENT_TEXT_FIELDS = ("type", "name", "model", "serial_number", "description")
MIN_SECTOR_NAME_LENGTH = 2


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def clean_equipment_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return trimmed equipment fields or raise ``ValidationFailed``.

    ``type`` and ``name`` must be non-empty and the barcode must have at least
    ``MIN_BARCODE_LENGTH`` characters once surrounding whitespace is removed.
    Optional text fields collapse to ``None`` when blank. ``sector_id`` is
    passed through untouched; resolving it is the registry's job.
    """

    cleaned: dict[str, Any] = {field: _clean_text(data.get(field)) for field in EQUIPMENT_TEXT_FIELDS}
    cleaned["barcode"] = clean_barcode(data.get("barcode"))
    cleaned["sector_id"] = data.get("sector_id")

    errors: dict[str, str] = {}
    if not cleaned["type"]:
        errors["type"] = "type is required"
    if not cleaned["name"]:
        errors["name"] = "name is required"
    if not cleaned["barcode"]:
        errors["barcode"] = "barcode is required"
    elif len(cleaned["barcode"]) < MIN_BARCODE_LENGTH:
        errors["barcode"] = f"barcode must be at least {MIN_BARCODE_LENGTH} characters"
    if errors:
        raise ValidationFailed(errors)
    return cleaned


def clean_sector_name(value: Any) -> str:
    name = _clean_text(value) or ""
    if len(name) < MIN_SECTOR_NAME_LENGTH:
        raise ValidationFailed({"name": f"name must be at least {MIN_SECTOR_NAME_LENGTH} characters"})
    return name
