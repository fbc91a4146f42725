"""
RentCar Backend — Portable Column Types
=========================================

What:  Small set of column types and defaults reused by every model.
Why:   Production runs on PostgreSQL (JSONB, TIMESTAMPTZ, native UUID) while the
       test-suite runs on SQLite. These wrappers pick the right dialect type and
       normalise values so services never see a naive datetime or a Decimal.

Types:
    UTCDateTime  → TIMESTAMP WITH TIME ZONE; always returns aware UTC datetimes
    JSONType     → JSONB on PostgreSQL, JSON elsewhere
    Money        → NUMERIC(12, 2) surfaced as float
    enum_column  → Enum stored by value (lowercase strings), not by member name
"""

import enum
from datetime import datetime, timezone
from typing import Optional, Type

from sqlalchemy import JSON, DateTime, Enum as SAEnum, Numeric
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime (column default helper)."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp column.

    SQLite has no timezone support and hands back naive values; PostgreSQL
    returns aware ones in the session time zone. Both come out as UTC here.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


JSONType = JSON().with_variant(JSONB(), "postgresql")

Money = Numeric(12, 2, asdecimal=False)


def enum_column(enum_cls: Type[enum.Enum], name: str) -> SAEnum:
    """Enum type persisted by value, e.g. 'plugin_hybrid' instead of 'PLUGIN_HYBRID'."""
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
