"""
Persistence port for the workflow kernel.

Responsibility:
    Declares the load/save contract the kernel services rely on.  Adapters
    live in ``services/memory_store.py`` (in-process) and ``db/store.py``
    (SQLAlchemy).

Architecture position:
    Kernel > Domain -- interface only, zero I/O.

Invariants enforced (by adapters):
    - Each ``save_*`` call is atomic for a single role, transition or entity.
    - ``save_entity`` persists status and history together and never drops,
      reorders or rewrites an already-stored history record.

Failure modes:
    - Adapters propagate their own infrastructure faults unchanged.
"""

from __future__ import annotations

from typing import Protocol

from workflow_kernel.domain.roles import Role, TransitionAuthorization
from workflow_kernel.domain.workflow import WorkflowableEntity


class WorkflowStore(Protocol):
    """Storage collaborator for roles, authorizations and entities."""

    def load_roles(self) -> tuple[Role, ...]:
        """Return all stored roles in insertion order."""
        ...

    def save_role(self, role: Role) -> None:
        """Insert or replace one role."""
        ...

    def load_authorizations(self) -> tuple[TransitionAuthorization, ...]:
        """Return all stored transition authorizations."""
        ...

    def save_authorization(self, authorization: TransitionAuthorization) -> None:
        """Insert or replace the role set of one transition."""
        ...

    def delete_authorization(self, transition: str) -> None:
        """Remove a transition definition."""
        ...

    def load_entity(self, entity_id: str) -> WorkflowableEntity | None:
        """Return the entity with its full history, or None."""
        ...

    def insert_entity(self, entity: WorkflowableEntity) -> None:
        """Store a new entity.  Raises EntityAlreadyExistsError on duplicates."""
        ...

    def save_entity(self, entity: WorkflowableEntity) -> None:
        """Persist status changes and newly appended history records."""
        ...
