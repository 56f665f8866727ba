"""
workflow_kernel.services.permission_editor -- Role permission edits.

Responsibility:
    The sole writer of role permission sets and of the
    ``can_manage_transitions`` flag.

Architecture position:
    Kernel > Services.  May import from domain/, utils/, and the role catalog.

Invariants enforced:
    - The protected role is never altered: every operation on it raises
      ProtectedRoleError before anything is read or written.
    - Edits to one role are serialized by a per-role lock.
    - All-or-nothing: the store is written first, then the new frozen Role is
      swapped into the catalog.  A store fault leaves the catalog unchanged.
    - Permission tags follow the ``module.action`` form at this boundary.

Failure modes:
    - RoleNotFoundError for an unknown role.
    - ProtectedRoleError for the protected role.
    - InvalidPermissionTagError for a malformed tag.
    - Store faults propagate unchanged.

Audit relevance:
    Each applied edit logs ``role_permissions_updated`` with the permission
    sets before and after.
"""

from __future__ import annotations

from typing import Callable, Iterable

from workflow_kernel.domain.roles import Role, validate_permission_tag
from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.exceptions import ProtectedRoleError
from workflow_kernel.logging_config import get_logger
from workflow_kernel.services.role_catalog import RoleCatalog
from workflow_kernel.utils.locks import KeyedLock

logger = get_logger("services.permission_editor")


class PermissionEditor:
    """Mutates one role's permissions or transition-management flag."""

    def __init__(self, catalog: RoleCatalog, store: WorkflowStore) -> None:
        self._catalog = catalog
        self._store = store
        self._locks = KeyedLock("role")

    def set_permissions(
        self,
        role_name: str,
        permissions: Iterable[str],
        can_manage_transitions: bool | None = None,
    ) -> Role:
        """Replace the role's permission set atomically.

        When ``can_manage_transitions`` is given, the flag is changed in the
        same write, so no reader sees the new tags with the old flag.
        """
        self._reject_protected(role_name, "set_permissions")
        tags = frozenset(validate_permission_tag(t) for t in permissions)

        def change(role: Role) -> Role:
            role = role.with_permissions(tags)
            if can_manage_transitions is not None:
                role = role.with_can_manage_transitions(bool(can_manage_transitions))
            return role

        return self._edit(role_name, "set_permissions", change)

    def set_can_manage_transitions(self, role_name: str, flag: bool) -> Role:
        return self._edit(
            role_name,
            "set_can_manage_transitions",
            lambda role: role.with_can_manage_transitions(bool(flag)),
        )

    def add_permission(self, role_name: str, tag: str) -> Role:
        """Add ``tag``; adding a tag the role already holds is a no-op."""
        self._reject_protected(role_name, "add_permission")
        validate_permission_tag(tag)
        return self._edit(
            role_name,
            "add_permission",
            lambda role: role.with_permissions(role.permissions | {tag}),
        )

    def remove_permission(self, role_name: str, tag: str) -> Role:
        """Remove ``tag``; removing an absent tag is a no-op."""
        return self._edit(
            role_name,
            "remove_permission",
            lambda role: role.with_permissions(role.permissions - {tag}),
        )

    def _reject_protected(self, role_name: str, operation: str) -> None:
        if self._catalog.is_protected(role_name):
            logger.warning(
                "role_edit_rejected",
                extra={"role_name": role_name, "operation": operation, "reason": "protected"},
            )
            raise ProtectedRoleError(role_name, operation)

    def _edit(self, role_name: str, operation: str, change: Callable[[Role], Role]) -> Role:
        self._reject_protected(role_name, operation)

        with self._locks.hold(role_name):
            current = self._catalog.get(role_name)
            updated = change(current)
            if updated == current:
                logger.debug(
                    "role_edit_noop",
                    extra={"role_name": role_name, "operation": operation},
                )
                return current

            self._store.save_role(updated)
            self._catalog._replace(updated)

        logger.info(
            "role_permissions_updated",
            extra={
                "role_name": role_name,
                "operation": operation,
                "permissions_before": current.permissions,
                "permissions_after": updated.permissions,
                "can_manage_transitions": updated.can_manage_transitions,
            },
        )
        return updated
