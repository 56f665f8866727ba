"""
workflow_kernel.services.role_catalog -- Registry of role definitions.

Responsibility:
    Read access to the role definitions, the single ``is_protected``
    predicate, and grouping queries used by the admin screens (by module,
    by level).

Architecture position:
    Kernel > Services.  Leaf dependency for the permission editor, the
    authorization matrix and the workflow engine.

Invariants enforced:
    - Role names are unique.
    - Exactly one role is protected, and it exists in the catalog.
    - Readers always observe whole ``Role`` values: writes swap one frozen
      record for another, so a half-updated role is never visible.

Failure modes:
    - RoleNotFoundError for any unknown name.  An unknown role is never
      treated as a role without permissions.
    - InvalidRecordError on duplicate names at construction.

Audit relevance:
    The catalog is only written through ``PermissionEditor``, which logs
    every change with before/after values.
"""

from __future__ import annotations

import threading
from typing import Iterable

from workflow_kernel.domain.roles import DEFAULT_PROTECTED_ROLE, Role, RoleLevel
from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.exceptions import InvalidRecordError, RoleNotFoundError


class RoleCatalog:
    """In-memory role registry, initialised from the store."""

    def __init__(
        self,
        roles: Iterable[Role],
        protected_role: str = DEFAULT_PROTECTED_ROLE,
    ) -> None:
        by_name: dict[str, Role] = {}
        for role in roles:
            if role.name in by_name:
                raise InvalidRecordError("RoleCatalog", f"duplicate role name {role.name!r}")
            by_name[role.name] = role
        if protected_role not in by_name:
            raise RoleNotFoundError(protected_role)
        self._roles = by_name
        self._protected_role = protected_role
        self._write_lock = threading.Lock()

    @classmethod
    def from_store(
        cls,
        store: WorkflowStore,
        protected_role: str = DEFAULT_PROTECTED_ROLE,
    ) -> RoleCatalog:
        return cls(store.load_roles(), protected_role=protected_role)

    @property
    def protected_role(self) -> str:
        return self._protected_role

    def get(self, name: str) -> Role:
        """Return the role called ``name``.

        Raises:
            RoleNotFoundError: if no such role exists.
        """
        role = self._roles.get(name)
        if role is None:
            raise RoleNotFoundError(name)
        return role

    def contains(self, name: str) -> bool:
        return name in self._roles

    def list(self) -> tuple[Role, ...]:
        """All roles in catalog order."""
        return tuple(self._roles.values())

    def names(self) -> tuple[str, ...]:
        return tuple(self._roles)

    def is_protected(self, name: str) -> bool:
        """True only for the protected role.

        This is the single protected-role predicate; editors consult it and
        nothing else re-implements the check.
        """
        return name == self._protected_role

    def has_permission(self, role_name: str, tag: str) -> bool:
        return self.get(role_name).has_permission(tag)

    # Grouping queries

    def list_by_module(self, module: str) -> tuple[Role, ...]:
        return tuple(r for r in self._roles.values() if r.module == module)

    def list_by_level(self, level: RoleLevel | str) -> tuple[Role, ...]:
        level = RoleLevel(level)
        return tuple(r for r in self._roles.values() if r.level == level)

    def available_modules(self) -> tuple[str, ...]:
        return tuple(sorted({r.module for r in self._roles.values()}))

    # Write path (PermissionEditor only)

    def _replace(self, role: Role) -> None:
        with self._write_lock:
            if role.name not in self._roles:
                raise RoleNotFoundError(role.name)
            # Copy-on-write so concurrent iteration never sees a mutating dict
            updated = dict(self._roles)
            updated[role.name] = role
            self._roles = updated
