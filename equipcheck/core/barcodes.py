"""Barcode helpers shared by the registry, the CSV import and the scanner.

Barcodes are business identifiers typed by people or emitted by handheld
scanners acting as keyboards. The only cleaning ever applied is trimming
surrounding whitespace: matching is exact, so ``"abc12"`` and ``"ABC12"``
are different items and a prefix never matches.
"""

from __future__ import annotations

__all__ = ["MIN_BARCODE_LENGTH", "clean_barcode", "barcodes_match"]


MIN_BARCODE_LENGTH = 5


def clean_barcode(raw: str | None) -> str:
    """Return the trimmed barcode, or an empty string when nothing was given."""

    if raw is None:
        return ""
    return str(raw).strip()


def barcodes_match(scanned: str | None, stored: str | None) -> bool:
    """Exact comparison of a scanned code against a stored barcode."""

    code = clean_barcode(scanned)
    if not code or stored is None:
        return False
    return code == stored
