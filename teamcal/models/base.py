"""Declarative base and shared column types."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from ..utils.timezone import ensure_utc

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Timestamp column that always hands back aware UTC datetimes.

    SQLite has no timezone support, so values are stored there as naive UTC
    and re-tagged on load. PostgreSQL stores ``timestamptz`` directly.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime, dialect):
        if value is None:
            return None
        value = ensure_utc(value)
        if dialect.name == 'sqlite':
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime, dialect):
        if value is None:
            return None
        return ensure_utc(value)
