"""Live collection snapshots over WebSocket.

The socket subscribes to the app's snapshot hub before it loads the initial
snapshot, so no write between the two can be missed. Only the newest
snapshot is kept for sending: a slow client skips intermediate states but
always ends on the current one.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from ..core.access import ROLE_ADMIN
from ..core.errors import DomainError
from ..deps.auth import identity_from_token
from ..services.realtime import COLLECTIONS, load_snapshot

router = APIRouter(prefix="/api/v1/stream", tags=["stream"])
LOGGER = logging.getLogger(__name__)

ADMIN_ONLY_COLLECTIONS = {"users"}


def _authorize(factory, token: str, collection: str) -> str | None:
    with factory() as db:
        try:
            user = identity_from_token(db, token)
        except (HTTPException, DomainError):
            return None
    if collection in ADMIN_ONLY_COLLECTIONS and user.role != ROLE_ADMIN:
        return None
    return user.uid


def _load(factory, collection: str) -> tuple:
    with factory() as db:
        return load_snapshot(db, collection)


def _message(collection: str, snapshot: tuple) -> dict[str, Any]:
    return {"collection": collection, "items": [item.model_dump(mode="json") for item in snapshot]}


@router.websocket("/{collection}")
async def stream(websocket: WebSocket, collection: str, token: str = Query("")):
    state = websocket.app.state
    if collection not in COLLECTIONS:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    uid = await run_in_threadpool(_authorize, state.session_factory, token, collection)
    if uid is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    pending: dict[str, tuple] = {}
    dirty = asyncio.Event()

    def deliver(snapshot: tuple) -> None:
        pending["snapshot"] = snapshot
        dirty.set()

    def on_snapshot(snapshot: tuple) -> None:
        # Publishers run in worker threads.
        loop.call_soon_threadsafe(deliver, snapshot)

    unsubscribe = state.hub.subscribe(collection, on_snapshot)
    LOGGER.info("stream.opened", extra={"extra_data": {"collection": collection, "uid": uid}})

    async def sender() -> None:
        initial = await run_in_threadpool(_load, state.session_factory, collection)
        if "snapshot" not in pending:
            deliver(initial)
        while True:
            await dirty.wait()
            dirty.clear()
            await websocket.send_json(_message(collection, pending["snapshot"]))

    task = asyncio.create_task(sender())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
            await task
        LOGGER.info("stream.closed", extra={"extra_data": {"collection": collection, "uid": uid}})
