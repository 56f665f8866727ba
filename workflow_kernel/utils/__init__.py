"""Utility modules for the workflow kernel."""

from workflow_kernel.utils.hashing import canonical_json, fragments_digest, history_digest
from workflow_kernel.utils.locks import KeyedLock

__all__ = [
    "KeyedLock",
    "canonical_json",
    "fragments_digest",
    "history_digest",
]
