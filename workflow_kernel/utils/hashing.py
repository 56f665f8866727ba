"""
Stable digests for workflow histories and configuration sets.

Two callers: ``AuditTrail.fingerprint`` (one digest per entity history) and
``workflow_config.loader.compute_checksum`` (one digest per configuration
set).  Equal content gives equal digests whatever the dict or set order.
"""

import hashlib
import json
from dataclasses import asdict, is_dataclass
from datetime import date
from enum import Enum
from typing import Any, Iterable, Mapping


def _encode(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    raise TypeError(f"Cannot digest value of type {type(obj).__name__}")


def canonical_json(data: Any) -> str:
    """
    Sorted-key, whitespace-free JSON.

    Non-ASCII text is kept as-is, so "Administrateur Système" digests by its
    characters and not by escape sequences.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_encode,
    )


def _sha256(data: Any) -> str:
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def history_digest(entity_id: str, records: Iterable[Any]) -> str:
    """Digest of an entity's history records (dataclasses) in order."""
    return _sha256({
        "entity_id": entity_id,
        "history": [asdict(r) if is_dataclass(r) else r for r in records],
    })


def fragments_digest(fragments: Mapping[str, Any]) -> str:
    """Digest of the parsed YAML fragments of one configuration set."""
    return _sha256(dict(fragments))
