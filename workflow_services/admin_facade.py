"""
workflow_services.admin_facade -- Entry points for the administration screens.

Responsibility:
    Read-side queries over the catalog, the matrix and entity histories,
    and write-side edits gated on the acting role's own authority.

Architecture position:
    Services.  Wraps a ``WorkflowSystem``; presentation code calls this and
    nothing below it.

Invariants enforced:
    - Matrix edits require the acting role to have ``can_manage_transitions``.
    - Permission edits require the ``roles.manage`` tag or the protected role.
    - Protected-role rules are still enforced by the kernel services
      themselves; the facade adds authority checks on top, never instead.

Failure modes:
    - RoleNotFoundError for an unknown acting role.
    - AdministrationNotPermittedError when the acting role lacks authority.
    - Any kernel error from the underlying service, unchanged.
"""

from __future__ import annotations

from typing import Iterable

from workflow_kernel.domain.roles import Role, TransitionAuthorization
from workflow_kernel.domain.workflow import WorkflowComment, WorkflowableEntity
from workflow_kernel.exceptions import AdministrationNotPermittedError
from workflow_kernel.logging_config import LogContext, get_logger
from workflow_services.bootstrap import WorkflowSystem

logger = get_logger("services.admin_facade")

ROLE_ADMIN_PERMISSION = "roles.manage"


class WorkflowAdminFacade:
    """Role-checked administration over one ``WorkflowSystem``."""

    def __init__(self, system: WorkflowSystem) -> None:
        self._system = system

    # Roles

    def list_roles(self) -> tuple[Role, ...]:
        return self._system.catalog.list()

    def get_role(self, name: str) -> Role:
        return self._system.catalog.get(name)

    def edit_role_permissions(
        self,
        acting_role: str,
        role_name: str,
        permissions: Iterable[str],
        can_manage_transitions: bool | None = None,
    ) -> Role:
        """Replace ``role_name``'s tags, and optionally its management flag."""
        self._require_role_admin(acting_role, "edit role permissions")
        with LogContext.bind(actor_role=acting_role):
            return self._system.editor.set_permissions(
                role_name, permissions, can_manage_transitions=can_manage_transitions
            )

    # Authorization matrix

    def list_transitions(self) -> dict[str, tuple[str, ...]]:
        return self._system.matrix.snapshot()

    def transition_roles(self, transition: str) -> tuple[str, ...]:
        return self._system.matrix.ordered_roles(transition)

    def edit_transition_roles(
        self, acting_role: str, transition: str, roles: Iterable[str]
    ) -> TransitionAuthorization:
        self._require_matrix_admin(acting_role, "edit transition roles")
        with LogContext.bind(actor_role=acting_role, transition=transition):
            return self._system.matrix.replace_role_set(transition, roles)

    def grant_transition(
        self, acting_role: str, transition: str, role_name: str
    ) -> TransitionAuthorization:
        self._require_matrix_admin(acting_role, "grant transitions")
        with LogContext.bind(actor_role=acting_role, transition=transition):
            return self._system.matrix.grant(transition, role_name)

    def revoke_transition(
        self, acting_role: str, transition: str, role_name: str
    ) -> TransitionAuthorization:
        self._require_matrix_admin(acting_role, "revoke transitions")
        with LogContext.bind(actor_role=acting_role, transition=transition):
            return self._system.matrix.revoke(transition, role_name)

    def remove_transition(self, acting_role: str, transition: str) -> None:
        self._require_matrix_admin(acting_role, "remove transitions")
        with LogContext.bind(actor_role=acting_role, transition=transition):
            self._system.matrix.remove_transition(transition)

    # Entities

    def request_transition(
        self, acting_role: str, entity_id: str, transition: str, comment: str | None
    ) -> WorkflowableEntity:
        return self._system.engine.apply_transition(entity_id, transition, acting_role, comment)

    def entity_history(self, entity_id: str) -> tuple[WorkflowComment, ...]:
        return self._system.audit_trail.history(entity_id)

    # Authority checks

    def _require_role_admin(self, acting_role: str, operation: str) -> None:
        catalog = self._system.catalog
        role = catalog.get(acting_role)
        if catalog.is_protected(role.name) or role.has_permission(ROLE_ADMIN_PERMISSION):
            return
        self._reject(acting_role, operation)

    def _require_matrix_admin(self, acting_role: str, operation: str) -> None:
        if self._system.catalog.get(acting_role).can_manage_transitions:
            return
        self._reject(acting_role, operation)

    def _reject(self, acting_role: str, operation: str) -> None:
        logger.warning(
            "administration_rejected",
            extra={"acting_role": acting_role, "operation": operation},
        )
        raise AdministrationNotPermittedError(acting_role, operation)
