"""
Module: workflow_kernel.db.base
Responsibility: Declarative base and portable column types for the workflow
    tables (roles, authorizations, entities, comments).
Architecture position: Kernel > DB.  Every model imports from here; this
    module imports nothing from models/, services/ or domain/.

Invariants enforced:
    - Every row has a uuid4 surrogate key; natural keys (role name,
      transition name, entity id) are separate unique columns.
    - Timestamps go in and come out as UTC-aware datetimes on every backend,
      including SQLite, which stores no offset.

Failure modes:
    - ValueError when binding a naive datetime.
"""

from datetime import datetime, timezone
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as String(36) so SQLite and PostgreSQL share one schema."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp normalized to UTC.

    PostgreSQL keeps the offset itself; SQLite returns naive values, which
    are re-attached to UTC on read.  History equality checks in the store
    depend on both backends handing back identical datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime {value!r} cannot be stored")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for the workflow tables."""

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )
