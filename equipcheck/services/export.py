"""Equipment exports: CSV for spreadsheets, PDF for printed reports."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, Iterable

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..core.timestamps import local_tz, to_instant, to_storage_text

LOGGER = logging.getLogger(__name__)

# Same names the importer reads first, then the store-only fields. An export
# therefore re-imports cleanly (the extra columns are ignored).
CSV_COLUMNS = (
    ("type", "type"),
    ("name", "name"),
    ("model", "model"),
    ("serialnumber", "serial_number"),
    ("description", "description"),
    ("barcode", "barcode"),
    ("sectorname", "sector_name"),
    ("sectorid", "sector_id"),
    ("createdat", "created_at"),
    ("lastcheckedat", "last_checked_at"),
)

PDF_COLUMNS = (
    ("Barcode", 38),
    ("Type", 30),
    ("Name", 42),
    ("Sector", 38),
    ("Last check", 42),
)
PDF_FONT = "Helvetica"


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return to_storage_text(value) or ""
    # The importer splits on bare commas and lines and strips quotes, so none
    # of them may appear in a cell; the writer then never needs to quote.
    text = str(value).replace(",", " ").replace('"', "")
    return " ".join(text.splitlines())


def equipment_to_csv(items: Iterable[Any]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_NONE)
    writer.writerow([header for header, _ in CSV_COLUMNS])
    for item in items:
        writer.writerow([_format_cell(getattr(item, attr, None)) for _, attr in CSV_COLUMNS])
    return buffer.getvalue()


def _latin1(text: str) -> str:
    # Core PDF fonts only cover Latin-1.
    return text.encode("latin-1", "replace").decode("latin-1")


def _local_stamp(value: Any) -> str:
    instant = to_instant(value)
    if instant is None:
        return "Not checked"
    return instant.astimezone(local_tz()).strftime("%Y-%m-%d %H:%M")


def report_to_pdf(report: Dict[str, Any], generated_by: str | None = None) -> bytes:
    """Render a ``build_report`` result as a one-table PDF."""

    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    pdf.set_font(PDF_FONT, style="B", size=16)
    pdf.cell(0, 10, _latin1(report["title"]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    summary = report["summary"]
    pdf.set_font(PDF_FONT, size=10)
    line = (
        f"Items: {summary['total']}  |  Checked: {summary['total_checked']}  |  "
        f"Checked today: {summary['checked_today']}  |  Not checked: {summary['total_unchecked']}"
    )
    pdf.cell(0, 6, _latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    if generated_by:
        pdf.cell(0, 6, _latin1(f"Generated by {generated_by}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    pdf.set_font(PDF_FONT, style="B", size=9)
    for header, width in PDF_COLUMNS:
        pdf.cell(width, 7, header, border=1)
    pdf.ln()

    pdf.set_font(PDF_FONT, size=9)
    for item in report["items"]:
        values = (
            item.barcode,
            item.type or "",
            item.name or "",
            item.sector_name or "Unassigned",
            _local_stamp(item.last_checked_at),
        )
        for (_, width), value in zip(PDF_COLUMNS, values):
            pdf.cell(width, 6, _latin1(str(value))[:28], border=1)
        pdf.ln()

    if report["by_type"]:
        pdf.ln(4)
        pdf.set_font(PDF_FONT, style="B", size=10)
        pdf.cell(0, 7, "By type", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font(PDF_FONT, size=9)
        for row in report["by_type"]:
            pdf.cell(0, 5, _latin1(f"{row['type']}: {row['count']}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    LOGGER.info("report.pdf_rendered", extra={"extra_data": {"kind": report["kind"], "items": len(report["items"])}})
    return bytes(pdf.output())
