from __future__ import annotations

from sqlalchemy import Column, Text

from ..db.session import Base
from ..db.types import InstantText


class UserProfile(Base):
    """Role record keyed by the identity's ``uid``; no row means no access."""

    __tablename__ = "users"

    uid = Column(Text, primary_key=True)
    email = Column(Text, nullable=False, unique=True, index=True)
    role = Column(Text, nullable=False, default="viewer")
    password_hash = Column(Text, nullable=True)
    created_at = Column(InstantText, nullable=False)
