from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SectorCreate(BaseModel):
    name: str = ""


class SectorUpdate(BaseModel):
    name: str = ""


class SectorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    created_at: datetime
