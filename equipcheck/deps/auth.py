from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.access import ActingUser
from ..core.security import decode_token
from ..crud.users import resolve_acting_user
from ..db.session import get_db
from ..middlewares import principal_ctx_var


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def identity_from_token(db: Session, token: str) -> ActingUser:
    """Decode an access token and attach the caller's role.

    Raises ``ProfileMissing`` when the token is valid but the profile row is
    gone, which clients must treat as a forced sign-out.
    """

    try:
        payload = decode_token(token, verify_type="access")
    except ValueError as exc:
        raise _unauthorized(str(exc)) from exc
    return resolve_acting_user(db, payload.sub)


def get_acting_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> ActingUser:
    if not authorization:
        raise _unauthorized("Authorization required")
    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        raise _unauthorized("Bearer token required")
    user = identity_from_token(db, credentials)
    _set_principal(request, f"{user.role}:{user.uid}")
    return user
