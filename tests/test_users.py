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

from equipcheck.core.access import ActingUser, normalize_role, require_role
from equipcheck.core.config import settings
from equipcheck.core.errors import PermissionDenied, ProfileMissing, ValidationFailed
from equipcheck.crud.users import (
    authenticate,
    create_user_profile,
    ensure_bootstrap_admin,
    list_profiles,
    register_user,
    resolve_acting_user,
)
from equipcheck.db.session import Base
from equipcheck.services.realtime import SnapshotHub

from equipcheck.models import user as user_model  # noqa: F401


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


def test_roles_default_to_viewer():
    assert normalize_role("ADMIN") == "admin"
    assert normalize_role("editor") == "viewer"
    assert normalize_role(None) == "viewer"
    with pytest.raises(PermissionDenied):
        require_role(None)
    with pytest.raises(PermissionDenied):
        require_role(ActingUser(uid="u", email=None, role="viewer"))


def test_profile_sign_in_and_role_lookup(db_session):
    profile = create_user_profile(db_session, " Admin@Example.com ", "s3cret!", "Admin")

    assert profile.email == "admin@example.com"
    assert authenticate(db_session, "ADMIN@example.com", "s3cret!").uid == profile.uid
    assert authenticate(db_session, "admin@example.com", "wrong") is None

    acting = resolve_acting_user(db_session, profile.uid)
    assert acting.is_admin
    assert acting.email == "admin@example.com"


def test_identity_without_profile_is_fatal(db_session):
    with pytest.raises(ProfileMissing):
        resolve_acting_user(db_session, "ghost")


def test_duplicate_email_is_rejected(db_session):
    create_user_profile(db_session, "a@example.com", "secret1")

    with pytest.raises(ValidationFailed) as excinfo:
        create_user_profile(db_session, "A@example.com", "secret2")
    assert "email" in excinfo.value.errors


def test_only_admins_register_users(db_session):
    viewer = ActingUser(uid="v", email="v@example.com", role="viewer")

    with pytest.raises(PermissionDenied):
        register_user(db_session, "new@example.com", "secret1", "admin", viewer)
    assert list_profiles(db_session) == []


def test_bootstrap_admin_only_on_empty_store(db_session, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", "changeme")

    created = ensure_bootstrap_admin(db_session)
    assert created.role == "admin"
    assert ensure_bootstrap_admin(db_session) is None
    assert [p.email for p in list_profiles(db_session)] == ["root@example.com"]
