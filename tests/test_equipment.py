import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from equipcheck.core.access import ActingUser
from equipcheck.core.errors import DuplicateBarcode, NotFound, PermissionDenied, StoreUnavailable, ValidationFailed
from equipcheck.core.timestamps import utcnow
from equipcheck.crud.equipment import (
    clear_conference_status,
    create_equipment,
    delete_equipment,
    delete_equipments,
    get_equipment,
    list_equipment,
    repair_sector_names,
    update_equipment,
)
from equipcheck.crud.sectors import create_sector, update_sector
from equipcheck.db.session import Base
from equipcheck.services.realtime import SnapshotHub

# Ensure models are imported so metadata is populated
from equipcheck.models import conference as conference_model  # noqa: F401
from equipcheck.models import equipment as equipment_model  # noqa: F401
from equipcheck.models import sector as sector_model  # noqa: F401

ADMIN = ActingUser(uid="admin-1", email="admin@example.com", role="admin")
VIEWER = ActingUser(uid="viewer-1", email="viewer@example.com", role="viewer")


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, info={"hub": SnapshotHub()})
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _item(barcode="PAT-00001", **extra):
    payload = {"type": "Notebook", "name": "Dell Latitude", "barcode": barcode}
    payload.update(extra)
    return payload


def test_create_equipment_trims_and_copies_sector_name(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)

    item = create_equipment(db_session, _item(barcode="  PAT-00001  ", sector_id=sector.id, model="  "), ADMIN)

    assert item.barcode == "PAT-00001"
    assert item.sector_id == sector.id
    assert item.sector_name == "Finance"
    assert item.model is None
    assert item.created_at.tzinfo is not None
    assert item.last_checked_at is None


def test_create_equipment_with_unknown_sector_clears_both_fields(db_session):
    item = create_equipment(db_session, _item(sector_id=999), ADMIN)

    assert item.sector_id is None
    assert item.sector_name is None


def test_create_equipment_rejects_short_barcode_before_writing(db_session):
    with pytest.raises(ValidationFailed) as excinfo:
        create_equipment(db_session, _item(barcode=" 1234 "), ADMIN)

    assert excinfo.value.errors == {"barcode": "barcode must be at least 5 characters"}
    assert list_equipment(db_session) == []


def test_create_equipment_reports_every_missing_field(db_session):
    with pytest.raises(ValidationFailed) as excinfo:
        create_equipment(db_session, {"type": "", "name": " ", "barcode": ""}, ADMIN)

    assert set(excinfo.value.errors) == {"type", "name", "barcode"}


def test_create_equipment_rejects_duplicate_barcode(db_session):
    create_equipment(db_session, _item(), ADMIN)

    with pytest.raises(DuplicateBarcode):
        create_equipment(db_session, _item(name="Another"), ADMIN)

    assert len(list_equipment(db_session)) == 1


def test_viewer_cannot_create_equipment(db_session):
    with pytest.raises(PermissionDenied):
        create_equipment(db_session, _item(), VIEWER)

    assert list_equipment(db_session) == []


def test_update_keeps_own_barcode_and_rejects_a_taken_one(db_session):
    first = create_equipment(db_session, _item("AAAAA1"), ADMIN)
    create_equipment(db_session, _item("BBBBB2"), ADMIN)

    renamed = update_equipment(db_session, first.id, {"name": "Renamed", "barcode": "AAAAA1"}, ADMIN)
    assert renamed.name == "Renamed"
    assert renamed.type == "Notebook"

    with pytest.raises(DuplicateBarcode):
        update_equipment(db_session, first.id, {"barcode": "BBBBB2"}, ADMIN)


def test_update_with_explicit_null_sector_removes_it(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)
    item = create_equipment(db_session, _item(sector_id=sector.id), ADMIN)

    untouched = update_equipment(db_session, item.id, {"name": "Still in sector"}, ADMIN)
    assert untouched.sector_name == "Finance"

    moved = update_equipment(db_session, item.id, {"sector_id": None}, ADMIN)
    assert moved.sector_id is None
    assert moved.sector_name is None


def test_update_and_delete_unknown_id_raise_not_found(db_session):
    with pytest.raises(NotFound):
        update_equipment(db_session, 42, {"name": "x"}, ADMIN)
    with pytest.raises(NotFound):
        delete_equipment(db_session, 42, ADMIN)


def test_delete_equipments_skips_unknown_ids(db_session):
    a = create_equipment(db_session, _item("AAAAA1"), ADMIN)
    b = create_equipment(db_session, _item("BBBBB2"), ADMIN)
    c = create_equipment(db_session, _item("CCCCC3"), ADMIN)

    removed = delete_equipments(db_session, [a.id, b.id, 999], ADMIN)

    assert removed == 2
    assert [item.id for item in list_equipment(db_session)] == [c.id]
    assert get_equipment(db_session, a.id) is None


def test_clear_conference_status_is_scoped_to_sector(db_session):
    finance = create_sector(db_session, {"name": "Finance"}, ADMIN)
    legal = create_sector(db_session, {"name": "Legal"}, ADMIN)
    in_finance = create_equipment(db_session, _item("AAAAA1", sector_id=finance.id), ADMIN)
    in_legal = create_equipment(db_session, _item("BBBBB2", sector_id=legal.id), ADMIN)
    for item in (in_finance, in_legal):
        item.last_checked_at = utcnow()
    db_session.commit()

    assert clear_conference_status(db_session, ADMIN, sector_id=finance.id) == 1
    db_session.refresh(in_finance)
    db_session.refresh(in_legal)
    assert in_finance.last_checked_at is None
    assert in_legal.last_checked_at is not None

    # Nothing left to clear in that sector: still a success.
    assert clear_conference_status(db_session, ADMIN, sector_id=finance.id) == 0
    assert clear_conference_status(db_session, ADMIN) == 1


def test_viewer_cannot_clear_conference_status(db_session):
    with pytest.raises(PermissionDenied):
        clear_conference_status(db_session, VIEWER)


def test_repair_sector_names_after_rename(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)
    item = create_equipment(db_session, _item(sector_id=sector.id), ADMIN)

    update_sector(db_session, sector.id, {"name": "Accounting"}, ADMIN)
    db_session.refresh(item)
    assert item.sector_name == "Finance"

    assert repair_sector_names(db_session, ADMIN) == 1
    db_session.refresh(item)
    assert item.sector_name == "Accounting"
    assert repair_sector_names(db_session, ADMIN) == 0


def test_list_equipment_filters(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)
    create_equipment(db_session, _item("AAAAA1", name="Dell Monitor", type="Monitor"), ADMIN)
    checked = create_equipment(db_session, _item("BBBBB2", name="HP Laptop", sector_id=sector.id), ADMIN)
    checked.last_checked_at = utcnow()
    db_session.commit()

    assert [i.barcode for i in list_equipment(db_session, search="monitor")] == ["AAAAA1"]
    assert [i.barcode for i in list_equipment(db_session, search="BBB")] == ["BBBBB2"]
    assert [i.barcode for i in list_equipment(db_session, sector_id=sector.id)] == ["BBBBB2"]
    assert [i.barcode for i in list_equipment(db_session, unchecked_only=True)] == ["AAAAA1"]


def test_store_failure_rolls_back_and_raises_store_unavailable(db_session, monkeypatch):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)
    kept = create_equipment(db_session, _item("AAAAA1", sector_id=sector.id), ADMIN)
    kept.last_checked_at = utcnow()
    db_session.commit()

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(StoreUnavailable):
        create_equipment(db_session, _item("BBBBB2"), ADMIN)
    with pytest.raises(StoreUnavailable):
        clear_conference_status(db_session, ADMIN)

    monkeypatch.undo()
    assert [item.barcode for item in list_equipment(db_session)] == ["AAAAA1"]
    assert get_equipment(db_session, kept.id).last_checked_at is not None
