"""Role profiles: the ``users`` collection keyed by identity uid."""

from __future__ import annotations

import logging
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.access import ROLE_ADMIN, ActingUser, normalize_role, require_role
from ..core.config import settings
from ..core.errors import ProfileMissing, ValidationFailed
from ..core.security import hash_password, verify_password
from ..core.timestamps import utcnow
from ..db.session import commit_or_raise
from ..models.user import UserProfile
from ..services.realtime import publish

LOGGER = logging.getLogger(__name__)


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def get_profile(db: Session, uid: str) -> UserProfile | None:
    return db.get(UserProfile, uid)


def get_profile_by_email(db: Session, email: str) -> UserProfile | None:
    stmt = select(UserProfile).where(UserProfile.email == _normalize_email(email))
    return db.execute(stmt).scalars().first()


def list_profiles(db: Session) -> list[UserProfile]:
    return db.execute(select(UserProfile).order_by(UserProfile.email)).scalars().all()


def create_user_profile(db: Session, email: str, password: str, role: str = "viewer") -> UserProfile:
    """Register a sign-in identity together with its role record."""

    address = _normalize_email(email)
    if "@" not in address:
        raise ValidationFailed({"email": "a valid email address is required"})
    if get_profile_by_email(db, address):
        raise ValidationFailed({"email": "an account with this email already exists"})
    profile = UserProfile(
        uid=uuid4().hex,
        email=address,
        role=normalize_role(role),
        password_hash=hash_password(password),
        created_at=utcnow(),
    )
    db.add(profile)
    commit_or_raise(db, "user.create")
    db.refresh(profile)
    LOGGER.info("user.created", extra={"extra_data": {"uid": profile.uid, "role": profile.role}})
    publish(db, "users")
    return profile


def register_user(db: Session, email: str, password: str, role: str, actor: ActingUser) -> UserProfile:
    require_role(actor)
    return create_user_profile(db, email, password, role)


def authenticate(db: Session, email: str, password: str) -> UserProfile | None:
    profile = get_profile_by_email(db, email)
    if profile is None or not verify_password(password, profile.password_hash):
        return None
    return profile


def resolve_acting_user(db: Session, uid: str) -> ActingUser:
    """Look up the role for an authenticated uid.

    A valid identity without a profile row is inconsistent state: raise
    ``ProfileMissing`` so the caller ends the session instead of continuing
    half-authenticated.
    """

    profile = get_profile(db, uid)
    if profile is None:
        LOGGER.warning("auth.profile_missing", extra={"extra_data": {"uid": uid}})
        raise ProfileMissing()
    return ActingUser(uid=profile.uid, email=profile.email, role=normalize_role(profile.role))


def ensure_bootstrap_admin(db: Session) -> UserProfile | None:
    """Create the configured first admin when no profile exists yet."""

    email = settings.BOOTSTRAP_ADMIN_EMAIL
    password = settings.BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        return None
    if db.execute(select(func.count()).select_from(UserProfile)).scalar_one():
        return None
    return create_user_profile(db, email, password, ROLE_ADMIN)
