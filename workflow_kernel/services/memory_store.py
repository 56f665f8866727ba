"""
workflow_kernel.services.memory_store -- In-process WorkflowStore adapter.

Responsibility:
    Dict-backed implementation of the ``WorkflowStore`` port for tests,
    single-process deployments and seeding before a database exists.

Architecture position:
    Kernel > Services.  May import from domain/ and exceptions only.

Invariants enforced:
    - Every call is atomic under one internal lock.
    - ``save_entity`` only accepts histories that extend the stored one;
      stored records are never rewritten, dropped or reordered.

Failure modes:
    - EntityAlreadyExistsError on ``insert_entity`` with a known id.
    - EntityNotFoundError on ``save_entity`` for an unknown id.
    - ImmutabilityViolationError when a save would rewrite history.
"""

from __future__ import annotations

import threading

from workflow_kernel.domain.roles import Role, TransitionAuthorization
from workflow_kernel.domain.workflow import WorkflowableEntity
from workflow_kernel.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    ImmutabilityViolationError,
)


class InMemoryWorkflowStore:
    """Thread-safe, dict-backed store."""

    def __init__(
        self,
        roles: tuple[Role, ...] = (),
        authorizations: tuple[TransitionAuthorization, ...] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._roles: dict[str, Role] = {r.name: r for r in roles}
        self._authorizations: dict[str, TransitionAuthorization] = {
            a.transition: a for a in authorizations
        }
        self._entities: dict[str, WorkflowableEntity] = {}

    # Roles

    def load_roles(self) -> tuple[Role, ...]:
        with self._lock:
            return tuple(self._roles.values())

    def save_role(self, role: Role) -> None:
        with self._lock:
            self._roles[role.name] = role

    # Authorizations

    def load_authorizations(self) -> tuple[TransitionAuthorization, ...]:
        with self._lock:
            return tuple(self._authorizations.values())

    def save_authorization(self, authorization: TransitionAuthorization) -> None:
        with self._lock:
            self._authorizations[authorization.transition] = authorization

    def delete_authorization(self, transition: str) -> None:
        with self._lock:
            self._authorizations.pop(transition, None)

    # Entities

    def load_entity(self, entity_id: str) -> WorkflowableEntity | None:
        with self._lock:
            return self._entities.get(entity_id)

    def insert_entity(self, entity: WorkflowableEntity) -> None:
        with self._lock:
            if entity.id in self._entities:
                raise EntityAlreadyExistsError(entity.id)
            self._entities[entity.id] = entity

    def save_entity(self, entity: WorkflowableEntity) -> None:
        with self._lock:
            stored = self._entities.get(entity.id)
            if stored is None:
                raise EntityNotFoundError(entity.id)
            if entity.history[: len(stored.history)] != stored.history:
                raise ImmutabilityViolationError(
                    "WorkflowableEntity", entity.id, "stored history may only be extended"
                )
            self._entities[entity.id] = entity
