from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base
from ..db.types import InstantText


class ConferenceRecord(Base):
    """Append-only audit entry written each time a barcode check succeeds.

    Everything here is a copy taken at check time. ``equipment_id`` is a plain
    value rather than a foreign key so the history outlives deleted equipment.
    """

    __tablename__ = "conferences"

    id = Column(Integer, primary_key=True, index=True)
    equipment_id = Column(Integer, nullable=False, index=True)
    barcode = Column(Text, nullable=False)
    equipment_name = Column(Text, nullable=False)
    equipment_type = Column(Text, nullable=True)
    sector_id = Column(Integer, nullable=True)
    sector_name = Column(Text, nullable=True)
    user_id = Column(Text, nullable=False)
    user_email = Column(Text, nullable=True)
    checked_at = Column(InstantText, nullable=False)
