from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from ..core.access import ActingUser
from ..core.config import settings
from ..core.errors import NotFound, ValidationFailed
from ..crud.equipment import (
    clear_conference_status,
    create_equipment,
    delete_equipment,
    delete_equipments,
    get_equipment,
    list_equipment,
    repair_sector_names,
    update_equipment,
)
from ..db.session import get_db
from ..deps.auth import get_acting_user
from ..deps.state import require_confirmation
from ..schemas.equipment import (
    BulkDeleteRequest,
    BulkDeleteResult,
    ClearConferenceResult,
    EquipmentCreate,
    EquipmentOut,
    EquipmentUpdate,
    RepairResult,
)
from ..schemas.imports import ImportMessageOut, ImportResultOut
from ..services.csv_import import import_equipment_csv
from ..services.export import equipment_to_csv

router = APIRouter(prefix="/api/v1/equipment", tags=["equipment"])


@router.get("", response_model=list[EquipmentOut], dependencies=[Depends(get_acting_user)])
def api_list(
    sector_id: int | None = None,
    unchecked_only: bool = False,
    search: str | None = Query(None, max_length=120),
    limit: int = Query(500, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return list_equipment(
        db,
        sector_id=sector_id,
        unchecked_only=unchecked_only,
        search=search,
        limit=limit,
        offset=offset,
    )


# Declared before "/{item_id}" so the path is not parsed as an id.
@router.get("/export.csv", dependencies=[Depends(get_acting_user)])
def api_export_csv(sector_id: int | None = None, db: Session = Depends(get_db)):
    body = equipment_to_csv(list_equipment(db, sector_id=sector_id))
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="equipment.csv"'},
    )


@router.get("/{item_id}", response_model=EquipmentOut, dependencies=[Depends(get_acting_user)])
def api_get(item_id: int, db: Session = Depends(get_db)):
    item = get_equipment(db, item_id)
    if item is None:
        raise NotFound("Equipment not found")
    return item


@router.post("", response_model=EquipmentOut, status_code=status.HTTP_201_CREATED)
def api_create(payload: EquipmentCreate, db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    return create_equipment(db, payload.model_dump(), actor=user)


@router.patch("/{item_id}", response_model=EquipmentOut)
def api_update(
    item_id: int,
    payload: EquipmentUpdate,
    db: Session = Depends(get_db),
    user: ActingUser = Depends(get_acting_user),
):
    # exclude_unset keeps an explicit "sector_id": null (remove the sector)
    # apart from an omitted field.
    return update_equipment(db, item_id, payload.model_dump(exclude_unset=True), actor=user)


@router.delete("/{item_id}", dependencies=[Depends(require_confirmation)])
def api_delete(item_id: int, db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    delete_equipment(db, item_id, actor=user)
    return {"status": "deleted"}


@router.post("/bulk-delete", response_model=BulkDeleteResult, dependencies=[Depends(require_confirmation)])
def api_bulk_delete(
    payload: BulkDeleteRequest,
    db: Session = Depends(get_db),
    user: ActingUser = Depends(get_acting_user),
):
    return BulkDeleteResult(deleted=delete_equipments(db, payload.ids, actor=user))


@router.post("/import", response_model=ImportResultOut)
def api_import(
    file: UploadFile = File(...),
    message_limit: int | None = Query(None, ge=0, le=1000),
    db: Session = Depends(get_db),
    user: ActingUser = Depends(get_acting_user),
):
    raw = file.file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationFailed({"file": "file must be UTF-8 encoded text"}) from exc
    result = import_equipment_csv(db, text, actor=user)
    limit = settings.IMPORT_MESSAGE_LIMIT if message_limit is None else message_limit
    return ImportResultOut(
        imported=result.imported,
        duplicates=result.duplicates,
        rejected=result.rejected,
        total_messages=len(result.messages),
        messages=[ImportMessageOut.model_validate(msg) for msg in result.messages[:limit]],
    )


@router.post("/clear-conference", response_model=ClearConferenceResult, dependencies=[Depends(require_confirmation)])
def api_clear_conference(
    sector_id: int | None = None,
    db: Session = Depends(get_db),
    user: ActingUser = Depends(get_acting_user),
):
    cleared = clear_conference_status(db, actor=user, sector_id=sector_id)
    return ClearConferenceResult(cleared=cleared, sector_id=sector_id)


@router.post("/repair-sector-names", response_model=RepairResult)
def api_repair_sector_names(db: Session = Depends(get_db), user: ActingUser = Depends(get_acting_user)):
    return RepairResult(repaired=repair_sector_names(db, actor=user))
