from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from ..core.timestamps import to_instant, to_storage_text


class InstantText(TypeDecorator):
    """Store instants as ISO-8601 UTC text and read them back as aware datetimes.

    Legacy rows written as epoch milliseconds are read through the same path,
    so nothing above the model layer ever sees the raw storage format.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return to_storage_text(value)

    def process_result_value(self, value, dialect):
        return to_instant(value)
