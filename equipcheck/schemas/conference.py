from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from .equipment import EquipmentOut


class CheckRequest(BaseModel):
    barcode: str = ""

    model_config = {
        "json_schema_extra": {"example": {"barcode": "PAT-000123"}},
    }


class CheckOutcomeOut(BaseModel):
    status: Literal["checked", "not_found", "failed"]
    barcode: str
    equipment: Optional[EquipmentOut] = None
    record_id: Optional[int] = None
    reason: Optional[str] = None


class ConferenceRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    equipment_id: int
    barcode: str
    equipment_name: str
    equipment_type: Optional[str] = None
    sector_id: Optional[int] = None
    sector_name: Optional[str] = None
    user_id: str
    user_email: Optional[str] = None
    checked_at: datetime
