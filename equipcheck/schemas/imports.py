from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class ImportMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    level: Literal["error", "warning"]
    message: str


class ImportResultOut(BaseModel):
    imported: int
    duplicates: int
    rejected: int
    total_messages: int
    messages: list[ImportMessageOut]
