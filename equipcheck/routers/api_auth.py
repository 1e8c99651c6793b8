from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.access import ActingUser
from ..core.security import decode_token, issue_token_pair
from ..crud.users import authenticate, resolve_acting_user
from ..db.session import get_db
from ..deps.auth import get_acting_user
from ..schemas.auth import IdentityOut, RefreshRequest, TokenRequest, TokenResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
LOGGER = logging.getLogger(__name__)


@router.post("/token", response_model=TokenResponse, summary="Exchange email and password for JWTs")
def exchange_token(payload: TokenRequest, db: Session = Depends(get_db)):
    profile = authenticate(db, payload.email, payload.password)
    if profile is None:
        LOGGER.info("auth.sign_in_failed", extra={"extra_data": {"email": payload.email.strip().lower()}})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    LOGGER.info("auth.signed_in", extra={"extra_data": {"uid": profile.uid}})
    pair = issue_token_pair(subject=profile.uid, email=profile.email)
    return TokenResponse(**pair.model_dump())


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    # A deleted profile must not keep a session alive through refreshes.
    user = resolve_acting_user(db, claims.sub)
    pair = issue_token_pair(subject=user.uid, email=user.email)
    return TokenResponse(**pair.model_dump())


@router.get("/me", response_model=IdentityOut, summary="Current identity and role")
def whoami(user: ActingUser = Depends(get_acting_user)):
    return IdentityOut(uid=user.uid, email=user.email, role=user.role)


@router.post("/logout", summary="Sign out")
def logout(user: ActingUser = Depends(get_acting_user)):
    LOGGER.info("auth.signed_out", extra={"extra_data": {"uid": user.uid}})
    return {"status": "signed_out"}
