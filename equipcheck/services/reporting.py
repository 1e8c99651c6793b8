from __future__ import annotations

from collections import defaultdict
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, Sequence

from ..core.timestamps import same_local_day, utcnow

UNASSIGNED_SECTOR = "Unassigned"
UNSPECIFIED_TYPE = "Unspecified"

REPORT_TITLES = {
    "total": "Total inventory",
    "by_sector": "Inventory by sector",
    "not_checked": "Equipment not checked",
}


def is_checked_today(item: Any, now: datetime | None = None, tz: tzinfo | None = None) -> bool:
    """True when the item was checked on the same local calendar day as ``now``."""

    checked_at = getattr(item, "last_checked_at", None)
    if checked_at is None:
        return False
    return same_local_day(checked_at, now or utcnow(), tz)


def summarize(items: Iterable[Any], now: datetime | None = None, tz: tzinfo | None = None) -> Dict[str, int]:
    now = now or utcnow()
    totals = {"total": 0, "checked_today": 0, "total_checked": 0, "total_unchecked": 0}
    for item in items:
        totals["total"] += 1
        if getattr(item, "last_checked_at", None) is None:
            totals["total_unchecked"] += 1
            continue
        totals["total_checked"] += 1
        if is_checked_today(item, now, tz):
            totals["checked_today"] += 1
    return totals


def by_sector(items: Iterable[Any]) -> list[Dict[str, Any]]:
    """Checked/unchecked counts per sector label, largest sectors first.

    Sectors with equal totals keep the order in which they were first seen.
    """

    counts: Dict[str, Dict[str, Any]] = {}
    for item in items:
        label = (getattr(item, "sector_name", None) or "").strip() or UNASSIGNED_SECTOR
        row = counts.setdefault(label, {"sector": label, "checked": 0, "unchecked": 0, "total": 0})
        if getattr(item, "last_checked_at", None) is None:
            row["unchecked"] += 1
        else:
            row["checked"] += 1
        row["total"] += 1
    # ``sorted`` is stable, so ties stay in insertion order.
    return sorted(counts.values(), key=lambda row: row["total"], reverse=True)


def group_by_type(items: Iterable[Any]) -> list[Dict[str, Any]]:
    counts: Dict[str, int] = defaultdict(int)
    for item in items:
        label = (getattr(item, "type", None) or "").strip() or UNSPECIFIED_TYPE
        counts[label] += 1
    return [{"type": label, "count": counts[label]} for label in sorted(counts, key=str.lower)]


def matches_search(item: Any, term: str | None) -> bool:
    """Case-insensitive name/type/description match, substring match on barcode."""

    if not term:
        return True
    lowered = term.lower()
    for attr in ("name", "type", "description"):
        value = getattr(item, attr, None)
        if value and lowered in value.lower():
            return True
    return term in (getattr(item, "barcode", None) or "")


def build_report(
    kind: str,
    items: Sequence[Any],
    sectors: Sequence[Any] = (),
    sector_id: int | None = None,
    search: str | None = None,
    now: datetime | None = None,
) -> Dict[str, Any]:
    """Assemble one of the three inventory reports.

    ``by_sector`` needs ``sector_id`` to name an existing sector and raises
    ``LookupError`` otherwise so the caller can tell the user to pick one.
    """

    if kind not in REPORT_TITLES:
        raise ValueError(f"Unknown report kind: {kind}")

    title = REPORT_TITLES[kind]
    sector = None
    if kind == "by_sector":
        sector = next((s for s in sectors if s.id == sector_id), None) if sector_id is not None else None
        if sector is None:
            raise LookupError("Select an existing sector to build this report")
        selected = [item for item in items if item.sector_id == sector.id]
        title = f"{title}: {sector.name}"
    elif kind == "not_checked":
        selected = [item for item in items if item.last_checked_at is None]
    else:
        selected = list(items)

    term = (search or "").strip()
    selected = [item for item in selected if matches_search(item, term)]
    return {
        "kind": kind,
        "title": title,
        "sector": sector,
        "summary": summarize(selected, now),
        "by_type": group_by_type(selected),
        "items": selected,
    }


def dashboard(items: Sequence[Any], sectors: Sequence[Any], now: datetime | None = None) -> Dict[str, Any]:
    summary = summarize(items, now)
    return {
        "summary": summary,
        "total_sectors": len(sectors),
        "chart": [
            {"category": "checked", "value": summary["total_checked"]},
            {"category": "unchecked", "value": summary["total_unchecked"]},
        ],
        "by_sector": by_sector(items),
    }


__all__ = [
    "UNASSIGNED_SECTOR",
    "UNSPECIFIED_TYPE",
    "build_report",
    "by_sector",
    "dashboard",
    "group_by_type",
    "is_checked_today",
    "matches_search",
    "summarize",
]
