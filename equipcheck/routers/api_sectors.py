from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..core.access import ActingUser
from ..core.errors import NotFound
from ..crud.sectors import create_sector, delete_sector, get_sector, list_sectors, update_sector
from ..db.session import get_db
from ..deps.auth import get_acting_user
from ..deps.state import require_confirmation
from ..schemas.sector import SectorCreate, SectorOut, SectorUpdate

router = APIRouter(prefix="/api/v1/sectors", tags=["sectors"])


@router.get("", response_model=list[SectorOut], dependencies=[Depends(get_acting_user)])
def api_list(search: str | None = Query(None, max_length=120), db: Session = Depends(get_db)):
    return list_sectors(db, search=search)


@router.get("/{sector_id}", response_model=SectorOut, dependencies=[Depends(get_acting_user)])
def api_get(sector_id: int, db: Session = Depends(get_db)):
    sector = get_sector(db, sector_id)
    if sector is None:
        raise NotFound("Sector not found")
    return sector


@router.post("", response_model=SectorOut, status_code=status.HTTP_201_CREATED)
def api_create(payload: SectorCreate, db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    return create_sector(db, payload.model_dump(), actor=user)


@router.patch("/{sector_id}", response_model=SectorOut)
def api_update(
    sector_id: int,
    payload: SectorUpdate,
    db: Session = Depends(get_db),
    user: ActingUser = Depends(get_acting_user),
):
    return update_sector(db, sector_id, payload.model_dump(), actor=user)


@router.delete("/{sector_id}", dependencies=[Depends(require_confirmation)])
def api_delete(sector_id: int, db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    delete_sector(db, sector_id, actor=user)
    return {"status": "deleted"}
