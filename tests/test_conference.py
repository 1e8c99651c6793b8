import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from equipcheck.core.access import ActingUser
from equipcheck.core.errors import PermissionDenied, ValidationFailed
from equipcheck.core.timestamps import utcnow
from equipcheck.crud.conferences import list_conferences
from equipcheck.crud.equipment import create_equipment, get_equipment
from equipcheck.crud.sectors import create_sector
from equipcheck.db.session import Base
from equipcheck.models.conference import ConferenceRecord
from equipcheck.models.equipment import Equipment
from equipcheck.services.conference import CHECKED, FAILED, NOT_FOUND, ConferenceEngine
from equipcheck.services import realtime
from equipcheck.services.realtime import SnapshotCache, SnapshotHub

from equipcheck.models import sector as sector_model  # noqa: F401

ADMIN = ActingUser(uid="admin-1", email="admin@example.com", role="admin")
VIEWER = ActingUser(uid="viewer-1", email="viewer@example.com", role="viewer")


@pytest.fixture()
def hub():
    return SnapshotHub()


@pytest.fixture()
def db_session(hub):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, info={"hub": hub})
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def engine(db_session, hub):
    cache = SnapshotCache(hub).open()
    cache.prime(db_session)
    try:
        yield ConferenceEngine(cache)
    finally:
        cache.close()


def _audit_count(db):
    return len(db.execute(select(ConferenceRecord)).scalars().all())


def test_check_sets_timestamp_and_writes_audit_snapshot(db_session, engine):
    sector = create_sector(db_session, {"name": "Finance"}, ADMIN)
    item = create_equipment(
        db_session,
        {"type": "Notebook", "name": "Dell", "barcode": "PAT-00123", "sector_id": sector.id},
        ADMIN,
    )

    outcome = engine.check_barcode(db_session, "  PAT-00123 ", ADMIN)

    assert outcome.status == CHECKED
    assert outcome.equipment.id == item.id
    assert outcome.equipment.last_checked_at is not None
    record = db_session.get(ConferenceRecord, outcome.record_id)
    assert record.barcode == "PAT-00123"
    assert record.equipment_name == "Dell"
    assert record.equipment_type == "Notebook"
    assert record.sector_name == "Finance"
    assert record.user_id == ADMIN.uid
    assert record.user_email == ADMIN.email
    assert record.checked_at == get_equipment(db_session, item.id).last_checked_at


def test_scanning_twice_moves_timestamp_and_appends_two_records(db_session, engine):
    item = create_equipment(db_session, {"type": "Notebook", "name": "Dell", "barcode": "PAT-00123"}, ADMIN)

    first = engine.check_barcode(db_session, "PAT-00123", ADMIN)
    second = engine.check_barcode(db_session, "PAT-00123", ADMIN)

    assert first.status == second.status == CHECKED
    assert first.record_id != second.record_id
    assert second.equipment.last_checked_at >= first.equipment.last_checked_at
    assert _audit_count(db_session) == 2
    assert [r.id for r in list_conferences(db_session, equipment_id=item.id)] == [
        second.record_id,
        first.record_id,
    ]


def test_match_is_exact(db_session, engine):
    create_equipment(db_session, {"type": "Notebook", "name": "Dell", "barcode": "ABC12345"}, ADMIN)

    for code in ("abc12345", "ABC1234", "ABC123456", "BC12345"):
        assert engine.check_barcode(db_session, code, ADMIN).status == NOT_FOUND
    assert _audit_count(db_session) == 0


def test_unknown_code_writes_nothing(db_session, engine):
    outcome = engine.check_barcode(db_session, "NOPE-0001", ADMIN)

    assert outcome.status == NOT_FOUND
    assert outcome.barcode == "NOPE-0001"
    assert _audit_count(db_session) == 0


def test_viewer_is_denied_before_any_write(db_session, engine):
    item = create_equipment(db_session, {"type": "Notebook", "name": "Dell", "barcode": "PAT-00123"}, ADMIN)

    with pytest.raises(PermissionDenied):
        engine.check_barcode(db_session, "PAT-00123", VIEWER)

    assert get_equipment(db_session, item.id).last_checked_at is None
    assert _audit_count(db_session) == 0


def test_blank_code_is_rejected(db_session, engine):
    with pytest.raises(ValidationFailed):
        engine.check_barcode(db_session, "   ", ADMIN)


def test_match_against_stale_snapshot_fails_without_writing(db_session, engine):
    item = create_equipment(db_session, {"type": "Notebook", "name": "Dell", "barcode": "PAT-00123"}, ADMIN)
    # Delete behind the hub's back so the cache still lists the item.
    db_session.delete(db_session.get(Equipment, item.id))
    db_session.commit()

    outcome = engine.check_barcode(db_session, "PAT-00123", ADMIN)

    assert outcome.status == FAILED
    assert outcome.reason == "equipment no longer exists"
    assert _audit_count(db_session) == 0


def test_cache_only_sees_items_published_to_its_hub(db_session, engine):
    db_session.add(Equipment(type="Notebook", name="Ghost", barcode="GHOST-001", created_at=utcnow()))
    db_session.commit()

    assert engine.check_barcode(db_session, "GHOST-001", ADMIN).status == NOT_FOUND


def _failing_commit():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_store_failure_on_commit_is_a_failed_outcome_and_writes_nothing(db_session, engine, monkeypatch):
    item = create_equipment(db_session, {"type": "Notebook", "name": "Dell", "barcode": "PAT-00123"}, ADMIN)
    monkeypatch.setattr(db_session, "commit", _failing_commit)

    outcome = engine.check_barcode(db_session, "PAT-00123", ADMIN)

    assert outcome.status == FAILED
    assert outcome.reason == "store error: OperationalError"
    assert outcome.record_id is None
    monkeypatch.undo()
    assert _audit_count(db_session) == 0
    assert get_equipment(db_session, item.id).last_checked_at is None


def test_snapshot_reload_failure_after_commit_still_reports_checked(db_session, engine, monkeypatch):
    create_equipment(db_session, {"type": "Notebook", "name": "Dell", "barcode": "PAT-00123"}, ADMIN)

    def failing_load(db, collection):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(realtime, "load_snapshot", failing_load)

    outcome = engine.check_barcode(db_session, "PAT-00123", ADMIN)

    assert outcome.status == CHECKED
    assert outcome.equipment.last_checked_at is not None
    monkeypatch.undo()
    assert _audit_count(db_session) == 1
    assert db_session.get(ConferenceRecord, outcome.record_id).barcode == "PAT-00123"
