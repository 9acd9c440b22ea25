"""Custom SQLAlchemy column types shared by the boarding-house models."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.dialects import postgresql
from sqlalchemy.types import CHAR, TypeDecorator


class GUID(TypeDecorator):
    """UUID column that works on PostgreSQL and SQLite alike.

    PostgreSQL stores a native ``UUID``; other engines keep a 36-character
    string. Values always come back as ``str`` so identifiers can be compared
    and serialised as plain text.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        if dialect.name == "postgresql":
            if isinstance(value, uuid.UUID):
                return value
            return uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return str(value)


def new_id() -> str:
    """Primary key default matching what ``GUID`` hands back on load.

    Returning ``str`` keeps generated keys identical to reloaded ones, which
    batched inserts rely on when matching returned rows to their parameters.
    """

    return str(uuid.uuid4())
