"""
workflow_kernel.services.audit_trail -- Per-entity workflow history.

Responsibility:
    Builds and appends ``WorkflowComment`` records, reads an entity's
    history for display, and verifies that a history is an unbroken chain.

Architecture position:
    Kernel > Services.  Called by the workflow engine (append) and by the
    presentation boundary (history reads).

Invariants enforced:
    - Append-only: a record is only ever added at position len(history)+1.
    - Records are frozen and never edited or reordered.
    - Observed order equals commit order.

Failure modes:
    - EntityNotFoundError when reading history of an unknown entity.
    - ImmutabilityViolationError when a record is appended out of sequence.
    - AuditChainBrokenError from ``verify`` on a broken chain.

Audit relevance:
    ``fingerprint`` gives a stable SHA-256 over an entity's full history so
    an exported trail can be checked against the live one.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.domain.workflow import (
    WorkflowComment,
    WorkflowStatus,
    WorkflowableEntity,
)
from workflow_kernel.exceptions import (
    AuditChainBrokenError,
    EntityNotFoundError,
    ImmutabilityViolationError,
)
from workflow_kernel.logging_config import get_logger
from workflow_kernel.utils.hashing import history_digest

logger = get_logger("services.audit_trail")


class AuditTrail:
    """Ordered, append-only log of workflow actions per entity."""

    def __init__(self, store: WorkflowStore) -> None:
        self._store = store

    def record(
        self,
        entity: WorkflowableEntity,
        *,
        transition: str,
        action: str,
        comment: str,
        author_role: str,
        timestamp: datetime,
        to_status: WorkflowStatus,
    ) -> WorkflowComment:
        """Build the next history record for ``entity`` (not yet appended)."""
        return WorkflowComment(
            sequence=len(entity.history) + 1,
            transition=transition,
            action=action,
            comment=comment,
            author_role=author_role,
            timestamp=timestamp,
            from_status=entity.status,
            to_status=to_status,
        )

    def append(self, entity: WorkflowableEntity, record: WorkflowComment) -> WorkflowableEntity:
        """Return a copy of ``entity`` with ``record`` appended to its history.

        Pure: nothing is persisted here.  The caller saves the returned
        entity so status and history are written together.
        """
        expected = len(entity.history) + 1
        if record.sequence != expected:
            raise ImmutabilityViolationError(
                "WorkflowComment",
                entity.id,
                f"expected sequence {expected}, got {record.sequence}",
            )
        return replace(entity, history=entity.history + (record,))

    def history(self, entity_id: str) -> tuple[WorkflowComment, ...]:
        """History of ``entity_id`` in insertion order."""
        return self._load(entity_id).history

    def latest(self, entity_id: str) -> WorkflowComment | None:
        history = self.history(entity_id)
        return history[-1] if history else None

    def verify(self, entity: WorkflowableEntity) -> None:
        """Check contiguous sequences and status linkage.

        Raises:
            AuditChainBrokenError: on the first inconsistency found.
        """
        problem = _chain_problem(entity)
        if problem is not None:
            logger.error(
                "audit_chain_broken",
                extra={"workflow_entity": entity.id, "reason": problem},
            )
            raise AuditChainBrokenError(entity.id, problem)

    def fingerprint(self, entity_id: str) -> str:
        """SHA-256 over the entity's full history."""
        entity = self._load(entity_id)
        return history_digest(entity.id, entity.history)

    def _load(self, entity_id: str) -> WorkflowableEntity:
        entity = self._store.load_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity


def _chain_problem(entity: WorkflowableEntity) -> str | None:
    previous_status: WorkflowStatus | None = None
    for position, record in enumerate(entity.history, start=1):
        if record.sequence != position:
            return f"record {position} carries sequence {record.sequence}"
        if previous_status is not None and record.from_status != previous_status:
            return (
                f"record {position} starts from {record.from_status.value!r}, "
                f"previous record ended at {previous_status.value!r}"
            )
        previous_status = record.to_status
    if previous_status is not None and previous_status != entity.status:
        return (
            f"last record ends at {previous_status.value!r} "
            f"but entity is {entity.status.value!r}"
        )
    return None
