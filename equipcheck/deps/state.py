from __future__ import annotations

from fastapi import Query, Request

from ..core.errors import ConfirmationRequired
from ..services.conference import ConferenceEngine
from ..services.realtime import SnapshotCache


def get_cache(request: Request) -> SnapshotCache:
    return request.app.state.cache


def get_conference_engine(request: Request) -> ConferenceEngine:
    return request.app.state.conference_engine


def require_confirmation(confirm: bool = Query(False, description="Must be true for destructive operations")) -> None:
    if not confirm:
        raise ConfirmationRequired()
