from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from .equipment import EquipmentOut
from .sector import SectorOut

ReportKind = Literal["total", "by_sector", "not_checked"]


class SummaryOut(BaseModel):
    total: int
    checked_today: int
    total_checked: int
    total_unchecked: int


class SectorBreakdownOut(BaseModel):
    sector: str
    checked: int
    unchecked: int
    total: int


class TypeCountOut(BaseModel):
    type: str
    count: int


class ChartPointOut(BaseModel):
    category: Literal["checked", "unchecked"]
    value: int


class ReportOut(BaseModel):
    kind: ReportKind
    title: str
    sector: Optional[SectorOut] = None
    summary: SummaryOut
    by_type: list[TypeCountOut]
    items: list[EquipmentOut]


class DashboardOut(BaseModel):
    summary: SummaryOut
    total_sectors: int
    chart: list[ChartPointOut]
    by_sector: list[SectorBreakdownOut]
