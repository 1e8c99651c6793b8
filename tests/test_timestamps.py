import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from equipcheck.core.barcodes import barcodes_match, clean_barcode
from equipcheck.core.timestamps import local_date, same_local_day, to_instant, to_storage_text

EXPECTED = datetime(2024, 5, 10, 12, 30, 15, 250000, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw",
    [
        EXPECTED,
        EXPECTED.astimezone(timezone(timedelta(hours=-3))),
        EXPECTED.replace(tzinfo=None),
        "2024-05-10T12:30:15.250Z",
        "2024-05-10T09:30:15.250-03:00",
        1715344215250,
        "1715344215250",
    ],
)
def test_every_instant_form_normalises_to_the_same_utc_value(raw):
    assert to_instant(raw) == EXPECTED
    assert to_instant(raw).tzinfo is not None


def test_missing_instants_stay_missing():
    assert to_instant(None) is None
    assert to_instant("") is None
    assert to_storage_text(None) is None


def test_storage_text_is_iso_utc_with_z():
    assert to_storage_text(EXPECTED.astimezone(timezone(timedelta(hours=2)))) == "2024-05-10T12:30:15.250Z"


def test_booleans_are_not_instants():
    with pytest.raises(TypeError):
        to_instant(True)


def test_local_day_comparison_uses_given_zone():
    zone = timezone(timedelta(hours=-3))
    just_after_midnight_utc = datetime(2024, 5, 11, 0, 30, tzinfo=timezone.utc)

    assert local_date(just_after_midnight_utc, zone).day == 10
    assert same_local_day(just_after_midnight_utc, EXPECTED, zone)
    assert not same_local_day(just_after_midnight_utc, EXPECTED, timezone.utc)
    assert not same_local_day(None, EXPECTED, zone)


def test_barcodes_are_trimmed_and_matched_exactly():
    assert clean_barcode("  ABC12 \n") == "ABC12"
    assert clean_barcode(None) == ""
    assert barcodes_match(" ABC12 ", "ABC12")
    assert not barcodes_match("abc12", "ABC12")
    assert not barcodes_match("ABC1", "ABC12")
    assert not barcodes_match("", "")
