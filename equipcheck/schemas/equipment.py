from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EquipmentCreate(BaseModel):
    # Field rules (required values, barcode length) are enforced by the
    # registry so the API and the CSV import report them identically.
    type: str = ""
    name: str = ""
    model: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    barcode: str = ""
    sector_id: Optional[int] = None


class EquipmentUpdate(BaseModel):
    type: Optional[str] = None
    name: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    barcode: Optional[str] = None
    sector_id: Optional[int] = None


class EquipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    type: str
    name: str
    model: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    barcode: str
    sector_id: Optional[int] = None
    sector_name: Optional[str] = None
    created_at: datetime
    last_checked_at: Optional[datetime] = None


class BulkDeleteRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


class BulkDeleteResult(BaseModel):
    deleted: int


class ClearConferenceResult(BaseModel):
    cleared: int
    sector_id: Optional[int] = None


class RepairResult(BaseModel):
    repaired: int
