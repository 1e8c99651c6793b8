"""In-process snapshot subscriptions.

Writers commit, then call ``publish``; the hub reloads each touched
collection and hands the *full* snapshot to every subscriber of that
collection, in the order publishes happen. ``SnapshotCache`` is the one
long-lived subscriber the service keeps: the conference engine and the
report endpoints read from it instead of querying the database.

Every ``subscribe`` returns its own unsubscribe callable. Whoever subscribes
must call it when done, otherwise the hub keeps the listener alive forever.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.conference import ConferenceRecord
from ..models.equipment import Equipment
from ..models.sector import Sector
from ..models.user import UserProfile
from ..schemas.auth import UserOut
from ..schemas.conference import ConferenceRecordOut
from ..schemas.equipment import EquipmentOut
from ..schemas.sector import SectorOut

LOGGER = logging.getLogger(__name__)

COLLECTIONS = ("equipments", "sectors", "conferences", "users")

Snapshot = tuple
Listener = Callable[[Snapshot], None]


def _load_equipments(db: Session) -> Snapshot:
    rows = db.execute(select(Equipment).order_by(Equipment.id)).scalars().all()
    return tuple(EquipmentOut.model_validate(row) for row in rows)


def _load_sectors(db: Session) -> Snapshot:
    rows = db.execute(select(Sector).order_by(Sector.id)).scalars().all()
    return tuple(SectorOut.model_validate(row) for row in rows)


def _load_conferences(db: Session) -> Snapshot:
    rows = db.execute(select(ConferenceRecord).order_by(ConferenceRecord.id)).scalars().all()
    return tuple(ConferenceRecordOut.model_validate(row) for row in rows)


def _load_users(db: Session) -> Snapshot:
    rows = db.execute(select(UserProfile).order_by(UserProfile.email)).scalars().all()
    return tuple(UserOut.model_validate(row) for row in rows)


LOADERS: dict[str, Callable[[Session], Snapshot]] = {
    "equipments": _load_equipments,
    "sectors": _load_sectors,
    "conferences": _load_conferences,
    "users": _load_users,
}


def load_snapshot(db: Session, collection: str) -> Snapshot:
    try:
        loader = LOADERS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None
    return loader(db)


class SnapshotHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {name: [] for name in COLLECTIONS}

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        if collection not in self._listeners:
            raise ValueError(f"Unknown collection: {collection}")
        with self._lock:
            self._listeners[collection].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._listeners[collection].remove(listener)
                except ValueError:
                    pass  # already released

        return unsubscribe

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection, ()))

    def publish(self, db: Session, *collections: str) -> None:
        """Push fresh snapshots of ``collections`` to their subscribers."""

        for collection in collections:
            with self._lock:
                listeners = list(self._listeners.get(collection, ()))
            if not listeners:
                continue
            try:
                snapshot = load_snapshot(db, collection)
            except SQLAlchemyError:
                # The write already committed; a missed push is recovered by
                # the next one.
                LOGGER.exception("snapshot.load_failed", extra={"extra_data": {"collection": collection}})
                continue
            for listener in listeners:
                try:
                    listener(snapshot)
                except Exception:
                    LOGGER.exception(
                        "snapshot.listener_failed",
                        extra={"extra_data": {"collection": collection}},
                    )


hub = SnapshotHub()


def get_hub(db: Session) -> SnapshotHub:
    """Hub the session publishes to; sessions may carry their own via ``info``."""

    return db.info.get("hub") or hub


def publish(db: Session, *collections: str) -> None:
    get_hub(db).publish(db, *collections)


class SnapshotCache:
    """Latest equipment and sector snapshots, written only by hub pushes."""

    def __init__(self, source: SnapshotHub | None = None) -> None:
        self._hub = source or hub
        self._lock = threading.Lock()
        self._snapshots: dict[str, Snapshot] = {}
        self._versions: dict[str, int] = {}
        self._unsubscribers: list[Callable[[], None]] = []
        self._collections: tuple[str, ...] = ("equipments", "sectors")

    @property
    def hub(self) -> SnapshotHub:
        return self._hub

    def open(self, collections: Iterable[str] = ("equipments", "sectors")) -> "SnapshotCache":
        self._collections = tuple(collections)
        for collection in self._collections:
            self._unsubscribers.append(self._hub.subscribe(collection, self._receiver(collection)))
        return self

    def close(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

    def prime(self, db: Session) -> None:
        """Initial load; afterwards only pushes update the cache."""

        for collection in self._collections:
            self._store(collection, load_snapshot(db, collection))

    def _receiver(self, collection: str) -> Listener:
        def receive(snapshot: Snapshot) -> None:
            self._store(collection, snapshot)

        return receive

    def _store(self, collection: str, snapshot: Snapshot) -> None:
        with self._lock:
            self._snapshots[collection] = tuple(snapshot)
            self._versions[collection] = self._versions.get(collection, 0) + 1

    @property
    def ready(self) -> bool:
        with self._lock:
            return "equipments" in self._snapshots

    def snapshot(self, collection: str) -> Snapshot:
        with self._lock:
            return self._snapshots.get(collection, ())

    def version(self, collection: str) -> int:
        with self._lock:
            return self._versions.get(collection, 0)

    @property
    def equipments(self) -> tuple[EquipmentOut, ...]:
        return self.snapshot("equipments")

    @property
    def sectors(self) -> tuple[SectorOut, ...]:
        return self.snapshot("sectors")

    def __enter__(self) -> "SnapshotCache":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
