from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.access import ActingUser
from ..crud.conferences import list_conferences
from ..db.session import get_db
from ..deps.auth import get_acting_user
from ..deps.state import get_conference_engine
from ..schemas.conference import CheckOutcomeOut, CheckRequest, ConferenceRecordOut
from ..services.conference import ConferenceEngine

router = APIRouter(prefix="/api/v1/conference", tags=["conference"])


@router.post("/check", response_model=CheckOutcomeOut, summary="Check one scanned barcode")
def api_check(
    payload: CheckRequest,
    db: Session = Depends(get_db),
    user: ActingUser = Depends(get_acting_user),
    engine: ConferenceEngine = Depends(get_conference_engine),
):
    """Not-found and failed scans are answered with 200; ``status`` tells them apart."""

    outcome = engine.check_barcode(db, payload.barcode, actor=user)
    return CheckOutcomeOut(
        status=outcome.status,
        barcode=outcome.barcode,
        equipment=outcome.equipment,
        record_id=outcome.record_id,
        reason=outcome.reason,
    )


@router.get("/records", response_model=list[ConferenceRecordOut], dependencies=[Depends(get_acting_user)])
def api_records(
    equipment_id: int | None = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return list_conferences(db, equipment_id=equipment_id, limit=limit, offset=offset)
