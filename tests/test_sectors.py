import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from equipcheck.core.access import ActingUser
from equipcheck.core.errors import NotFound, PermissionDenied, SectorInUse, ValidationFailed
from equipcheck.crud.equipment import create_equipment, delete_equipment
from equipcheck.crud.sectors import (
    count_sector_equipment,
    create_sector,
    delete_sector,
    get_sector,
    list_sectors,
    update_sector,
)
from equipcheck.db.session import Base
from equipcheck.services.realtime import SnapshotHub

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


def test_sector_name_needs_two_characters(db_session):
    with pytest.raises(ValidationFailed) as excinfo:
        create_sector(db_session, {"name": " a "}, ADMIN)
    assert excinfo.value.errors == {"name": "name must be at least 2 characters"}

    sector = create_sector(db_session, {"name": "  IT  "}, ADMIN)
    assert sector.name == "IT"


def test_list_sectors_sorts_case_insensitively_and_filters(db_session):
    for name in ("legal", "Finance", "IT"):
        create_sector(db_session, {"name": name}, ADMIN)

    assert [s.name for s in list_sectors(db_session)] == ["Finance", "IT", "legal"]
    assert [s.name for s in list_sectors(db_session, search="FIN")] == ["Finance"]


def test_delete_sector_in_use_reports_count(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)
    first = create_equipment(
        db_session, {"type": "Notebook", "name": "A", "barcode": "AAAAA1", "sector_id": sector.id}, ADMIN
    )
    create_equipment(db_session, {"type": "Notebook", "name": "B", "barcode": "BBBBB2", "sector_id": sector.id}, ADMIN)

    with pytest.raises(SectorInUse) as excinfo:
        delete_sector(db_session, sector.id, ADMIN)
    assert excinfo.value.count == 2
    assert get_sector(db_session, sector.id) is not None

    delete_equipment(db_session, first.id, ADMIN)
    assert count_sector_equipment(db_session, sector.id) == 1


def test_delete_unused_sector(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)

    delete_sector(db_session, sector.id, ADMIN)

    assert get_sector(db_session, sector.id) is None
    with pytest.raises(NotFound):
        delete_sector(db_session, sector.id, ADMIN)


def test_viewer_cannot_change_sectors(db_session):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)

    with pytest.raises(PermissionDenied):
        create_sector(db_session, {"name": "Legal"}, VIEWER)
    with pytest.raises(PermissionDenied):
        update_sector(db_session, sector.id, {"name": "Legal"}, VIEWER)
    with pytest.raises(PermissionDenied):
        delete_sector(db_session, sector.id, VIEWER)
