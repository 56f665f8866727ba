"""Database infrastructure for the workflow kernel."""

from workflow_kernel.db.base import Base, UTCDateTime, UUIDString
from workflow_kernel.db.engine import (
    create_session_factory,
    create_tables,
    drop_tables,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "UTCDateTime",
    "UUIDString",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "init_engine_from_url",
    "session_scope",
]
