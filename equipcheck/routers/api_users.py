from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..core.access import ActingUser, require_role
from ..crud.users import list_profiles, register_user
from ..db.session import get_db
from ..deps.auth import get_acting_user
from ..schemas.auth import UserCreate, UserOut

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def api_list(db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    require_role(user)
    return list_profiles(db)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def api_create(payload: UserCreate, db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    return register_user(db, payload.email, payload.password, payload.role, actor=user)
