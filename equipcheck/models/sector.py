from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base
from ..db.types import InstantText


class Sector(Base):
    __tablename__ = "sectors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    created_at = Column(InstantText, nullable=False)
