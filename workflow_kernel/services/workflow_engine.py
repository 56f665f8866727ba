"""
workflow_kernel.services.workflow_engine -- Content lifecycle state machine.

Responsibility:
    Creates workflowable entities and applies named transitions to them,
    gating each transition on (1) a non-blank comment, (2) legality from the
    current status per the lifecycle table and (3) the authorization matrix.

Architecture position:
    Kernel > Services.  Thin coordinator over the role catalog, the
    authorization matrix, the audit trail and the store.

Invariants enforced:
    - Check order is fixed: entity exists, comment present, transition legal,
      role known, transition known to the matrix, role authorized.  The
      comment check runs before any authorization lookup.
    - One transition at a time per entity id (keyed lock), so two callers
      can never both act on the same prior status.
    - All-or-nothing: the entity is reloaded, checked, and saved with its
      new status and appended history in one store write.  No failure path
      touches the entity.
    - No retries.  Every rejection is raised to the caller.

Failure modes:
    - EntityNotFoundError, MissingCommentError, IllegalTransitionError,
      RoleNotFoundError, TransitionNotFoundError, UnauthorizedTransitionError.
    - EntityAlreadyExistsError from ``create_entity``.
    - Store faults propagate unchanged.

Audit relevance:
    Every request, accepted or rejected, emits one ``workflow_transition``
    log record with its outcome.  Accepted requests also append one
    ``WorkflowComment`` to the entity history.
"""

from __future__ import annotations

import time
from dataclasses import replace
from uuid import uuid4

from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.domain.workflow import (
    CONTENT_LIFECYCLE,
    ActionLabels,
    EntityKind,
    Lifecycle,
    WorkflowStatus,
    WorkflowableEntity,
)
from workflow_kernel.exceptions import (
    EntityNotFoundError,
    IllegalTransitionError,
    MissingCommentError,
    RoleNotFoundError,
    TransitionNotFoundError,
    UnauthorizedTransitionError,
    WorkflowKernelError,
)
from workflow_kernel.logging_config import LogContext, get_logger
from workflow_kernel.services.audit_trail import AuditTrail
from workflow_kernel.services.authorization_matrix import TransitionAuthorizationMatrix
from workflow_kernel.services.role_catalog import RoleCatalog
from workflow_kernel.utils.locks import KeyedLock

logger = get_logger("services.workflow_engine")

OUTCOME_SUCCESS = "success"
OUTCOME_NOT_FOUND = "entity_not_found"
OUTCOME_MISSING_COMMENT = "missing_comment"
OUTCOME_ILLEGAL = "illegal_transition"
OUTCOME_UNKNOWN_ROLE = "unknown_role"
OUTCOME_UNKNOWN_TRANSITION = "unknown_transition"
OUTCOME_UNAUTHORIZED = "unauthorized"

_OUTCOME_BY_ERROR: dict[type[WorkflowKernelError], str] = {
    EntityNotFoundError: OUTCOME_NOT_FOUND,
    MissingCommentError: OUTCOME_MISSING_COMMENT,
    IllegalTransitionError: OUTCOME_ILLEGAL,
    RoleNotFoundError: OUTCOME_UNKNOWN_ROLE,
    TransitionNotFoundError: OUTCOME_UNKNOWN_TRANSITION,
    UnauthorizedTransitionError: OUTCOME_UNAUTHORIZED,
}


def _emit_workflow_trace(
    *,
    entity_id: str,
    transition: str,
    acting_role: str,
    outcome: str,
    duration_ms: float,
    from_status: WorkflowStatus | None = None,
    to_status: WorkflowStatus | None = None,
    action: str | None = None,
    reason: str = "",
) -> None:
    record = {
        "workflow_entity": entity_id,
        "workflow_action": transition,
        "acting_role": acting_role,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if from_status is not None:
        record["from_status"] = from_status.value
    if to_status is not None:
        record["to_status"] = to_status.value
    if action is not None:
        record["action_label"] = action
    if outcome == OUTCOME_SUCCESS:
        logger.info("workflow_transition", extra=record)
    else:
        logger.warning("workflow_transition", extra=record)


class WorkflowEngine:
    """Applies lifecycle transitions to pages, news items and events."""

    def __init__(
        self,
        catalog: RoleCatalog,
        matrix: TransitionAuthorizationMatrix,
        audit_trail: AuditTrail,
        store: WorkflowStore,
        clock: Clock | None = None,
        lifecycle: Lifecycle = CONTENT_LIFECYCLE,
        action_labels: ActionLabels | None = None,
    ) -> None:
        self._catalog = catalog
        self._matrix = matrix
        self._audit = audit_trail
        self._store = store
        self._clock = clock or SystemClock()
        self._lifecycle = lifecycle
        self._labels = action_labels or ActionLabels()
        self._locks = KeyedLock("entity")

    @property
    def lifecycle(self) -> Lifecycle:
        return self._lifecycle

    @property
    def action_labels(self) -> ActionLabels:
        return self._labels

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def create_entity(
        self,
        kind: EntityKind | str,
        entity_id: str | None = None,
        title: str = "",
    ) -> WorkflowableEntity:
        """Register a new entity in the lifecycle's initial status."""
        now = self._clock.now()
        entity = WorkflowableEntity(
            id=entity_id or str(uuid4()),
            kind=kind,
            status=self._lifecycle.initial_status,
            title=title,
            created_at=now,
            updated_at=now,
        )
        with self._locks.hold(entity.id):
            self._store.insert_entity(entity)
        logger.info(
            "entity_created",
            extra={
                "workflow_entity": entity.id,
                "kind": entity.kind.value,
                "status": entity.status.value,
            },
        )
        return entity

    def get_entity(self, entity_id: str) -> WorkflowableEntity:
        entity = self._store.load_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity

    def legal_transitions(self, entity_id: str) -> tuple[str, ...]:
        """Transition names legal from the entity's current status."""
        return self._lifecycle.legal_from(self.get_entity(entity_id).status)

    def available_transitions(self, entity_id: str, acting_role: str) -> tuple[str, ...]:
        """Legal transitions the acting role is also authorized for."""
        self._catalog.get(acting_role)
        return tuple(
            name
            for name in self.legal_transitions(entity_id)
            if self._matrix.is_authorized(name, acting_role)
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def apply_transition(
        self,
        entity: WorkflowableEntity | str,
        transition: str,
        acting_role: str,
        comment: str | None,
    ) -> WorkflowableEntity:
        """Apply ``transition`` to ``entity`` as ``acting_role``.

        ``entity`` may be the entity or its id; the stored state is always
        reloaded under the entity lock, so a stale instance is harmless.

        Returns:
            The updated entity, with one more history record.
        """
        entity_id = entity.id if isinstance(entity, WorkflowableEntity) else entity
        started = time.monotonic()
        current: WorkflowableEntity | None = None

        with LogContext.bind(entity_id=entity_id, actor_role=acting_role, transition=transition):
            try:
                with self._locks.hold(entity_id):
                    current = self.get_entity(entity_id)
                    updated = self._apply(current, transition, acting_role, comment)
                    self._store.save_entity(updated)
            except WorkflowKernelError as exc:
                _emit_workflow_trace(
                    entity_id=entity_id,
                    transition=transition,
                    acting_role=acting_role,
                    outcome=_OUTCOME_BY_ERROR.get(type(exc), exc.code.lower()),
                    duration_ms=(time.monotonic() - started) * 1000,
                    from_status=current.status if current is not None else None,
                    reason=str(exc),
                )
                raise

            _emit_workflow_trace(
                entity_id=entity_id,
                transition=transition,
                acting_role=acting_role,
                outcome=OUTCOME_SUCCESS,
                duration_ms=(time.monotonic() - started) * 1000,
                from_status=current.status,
                to_status=updated.status,
                action=updated.history[-1].action,
            )
        return updated

    def _apply(
        self,
        entity: WorkflowableEntity,
        transition: str,
        acting_role: str,
        comment: str | None,
    ) -> WorkflowableEntity:
        """Check and build the next entity state.  Pure apart from reads."""
        if comment is None or not comment.strip():
            raise MissingCommentError(entity.id, transition)

        target = self._lifecycle.target(entity.status, transition)
        if target is None:
            raise IllegalTransitionError(entity.id, transition, entity.status.value)

        self._catalog.get(acting_role)
        if not self._matrix.is_known(transition):
            raise TransitionNotFoundError(transition)
        if acting_role not in self._matrix.who_may_perform(transition):
            raise UnauthorizedTransitionError(transition, acting_role, entity.id)

        now = self._clock.now()
        record = self._audit.record(
            entity,
            transition=transition,
            action=self._labels.label_for(transition, target),
            comment=comment,
            author_role=acting_role,
            timestamp=now,
            to_status=target,
        )
        updated = self._audit.append(entity, record)
        updated = updated.with_status(target, now)
        if target == WorkflowStatus.PUBLISHED:
            updated = replace(updated, published_at=now, published_by_role=acting_role)
        return updated
