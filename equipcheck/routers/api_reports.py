from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core.access import ActingUser
from ..deps.auth import get_acting_user
from ..deps.state import get_cache
from ..schemas.reports import DashboardOut, ReportKind, ReportOut
from ..services.export import report_to_pdf
from ..services.realtime import SnapshotCache
from ..services.reporting import build_report, dashboard

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _report(cache: SnapshotCache, kind: str, sector_id: int | None, search: str | None) -> dict:
    try:
        return build_report(kind, cache.equipments, cache.sectors, sector_id=sector_id, search=search)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/dashboard", response_model=DashboardOut, dependencies=[Depends(get_acting_user)])
def api_dashboard(cache: SnapshotCache = Depends(get_cache)):
    return dashboard(cache.equipments, cache.sectors)


@router.get("/{kind}.pdf", summary="Report as a printable PDF")
def api_report_pdf(
    kind: ReportKind,
    sector_id: int | None = None,
    search: str | None = Query(None, max_length=120),
    cache: SnapshotCache = Depends(get_cache),
    user: ActingUser = Depends(get_acting_user),
):
    body = report_to_pdf(_report(cache, kind, sector_id, search), generated_by=user.email)
    return Response(
        content=body,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="report-{kind}.pdf"'},
    )


@router.get("/{kind}", response_model=ReportOut, dependencies=[Depends(get_acting_user)])
def api_report(
    kind: ReportKind,
    sector_id: int | None = None,
    search: str | None = Query(None, max_length=120),
    cache: SnapshotCache = Depends(get_cache),
):
    return _report(cache, kind, sector_id, search)
