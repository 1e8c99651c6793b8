"""Roles and the single authorisation gate used by every mutating operation."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import PermissionDenied

ROLE_ADMIN = "admin"
ROLE_VIEWER = "viewer"
ROLE_CHOICES = (ROLE_ADMIN, ROLE_VIEWER)


def normalize_role(value: str | None) -> str:
    """Anything that is not (case-insensitively) ``admin`` is a viewer."""

    return ROLE_ADMIN if (value or "").strip().lower() == ROLE_ADMIN else ROLE_VIEWER


@dataclass(frozen=True)
class ActingUser:
    uid: str
    email: str | None
    role: str = ROLE_VIEWER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def require_role(user: ActingUser | None, role: str = ROLE_ADMIN) -> ActingUser:
    if user is None:
        raise PermissionDenied("Sign in to perform this action")
    if role == ROLE_ADMIN and not user.is_admin:
        raise PermissionDenied()
    return user


__all__ = [
    "ROLE_ADMIN",
    "ROLE_VIEWER",
    "ROLE_CHOICES",
    "ActingUser",
    "normalize_role",
    "require_role",
]
