"""SQLAlchemy session helpers.

The relational database plays the role of the document store: each table is
a collection, and one ``Session.commit`` is the atomic batch write every
multi-row operation relies on.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings
from ..core.errors import StoreUnavailable

LOGGER = logging.getLogger(__name__)

# SQLite connections are shared by FastAPI worker threads; other engines
# ignore this argument.
CONNECT_ARGS = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=CONNECT_ARGS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db(request: Request):
    """FastAPI dependency that yields a session and guarantees cleanup."""

    factory = getattr(request.app.state, "session_factory", None) or SessionLocal
    db = factory()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(
    db: Session,
    action: str,
    on_conflict: Callable[[], Exception] | None = None,
) -> None:
    """Commit the pending batch; on failure roll it back and raise.

    Constraint violations become ``on_conflict()`` when given; every other
    store failure surfaces as ``StoreUnavailable``.
    """

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if on_conflict is None:
            LOGGER.exception("store.commit_failed", extra={"extra_data": {"action": action}})
            raise StoreUnavailable() from exc
        LOGGER.warning("store.conflict", extra={"extra_data": {"action": action}})
        raise on_conflict() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        LOGGER.exception("store.commit_failed", extra={"extra_data": {"action": action}})
        raise StoreUnavailable() from exc
