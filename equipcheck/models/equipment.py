"""Equipment rows: the items people register, assign to sectors and scan.

``sector_name`` is a copy of the sector's name taken whenever this row is
written. Renaming a sector later does not touch it; run
``repair_sector_names`` to re-synchronise.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text

from ..db.session import Base
from ..db.types import InstantText


class Equipment(Base):
    __tablename__ = "equipments"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    model = Column(Text, nullable=True)
    serial_number = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    barcode = Column(Text, nullable=False, index=True, unique=True)
    sector_id = Column(Integer, ForeignKey("sectors.id"), nullable=True, index=True)
    sector_name = Column(Text, nullable=True)
    created_at = Column(InstantText, nullable=False)
    last_checked_at = Column(InstantText, nullable=True)

    @property
    def is_checked(self) -> bool:
        return self.last_checked_at is not None
