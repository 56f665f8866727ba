"""
workflow_kernel.services.authorization_matrix -- Transition -> roles map.

Responsibility:
    Answers "which roles may perform transition T" and is the sole writer
    of that mapping (grant, revoke, bulk replace, remove).

Architecture position:
    Kernel > Services.  Depends on the role catalog for role existence and
    the protected-role predicate.

Invariants enforced:
    - The protected role can never be revoked from a transition.
    - A known transition never ends up with an empty role set.
    - Rows loaded without the protected role (empty or not) get it put
      first; the repaired row is written back on its next edit.
    - ``grant`` and ``replace_role_set`` always leave the protected role in
      the set.  ``replace_role_set`` injects it when the caller omitted it
      (permissive policy: bulk edits drop it by omission, not intent);
      ``revoke`` of the protected role is a hard rejection.
    - Edits to one transition are serialized by a per-transition lock; the
      store is written before the in-memory map is swapped.

Failure modes:
    - RoleNotFoundError when granting/replacing with an unknown role.
    - TransitionNotFoundError when revoking from or removing an unknown
      transition.
    - ProtectedRoleError when revoking the protected role.
    - EmptyAuthorizationError when a revoke would leave no role.
    - Store faults propagate unchanged; the matrix is left as it was.

Audit relevance:
    Every applied edit logs ``transition_authorization_updated`` (or
    ``transition_removed``) with the role sets before and after.
"""

from __future__ import annotations

import threading
from typing import Iterable

from workflow_kernel.domain.roles import TransitionAuthorization
from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.exceptions import (
    EmptyAuthorizationError,
    ProtectedRoleError,
    TransitionNotFoundError,
)
from workflow_kernel.logging_config import get_logger
from workflow_kernel.services.role_catalog import RoleCatalog
from workflow_kernel.utils.locks import KeyedLock

logger = get_logger("services.authorization_matrix")


class TransitionAuthorizationMatrix:
    """Authorization matrix with its editor operations."""

    def __init__(
        self,
        catalog: RoleCatalog,
        store: WorkflowStore,
        authorizations: Iterable[TransitionAuthorization] = (),
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._locks = KeyedLock("transition")
        self._write_lock = threading.Lock()

        rows: dict[str, TransitionAuthorization] = {}
        for auth in authorizations:
            if not auth.roles:
                # A known transition must stay executable
                auth = TransitionAuthorization(auth.transition, (catalog.protected_role,))
                logger.warning(
                    "authorization_empty_on_load",
                    extra={"transition": auth.transition},
                )
            elif not auth.includes(catalog.protected_role):
                logger.warning(
                    "authorization_missing_protected_role",
                    extra={"transition": auth.transition, "roles": list(auth.roles)},
                )
                auth = self._with_protected(auth)
            rows[auth.transition] = auth
        self._rows = rows

    @classmethod
    def from_store(cls, catalog: RoleCatalog, store: WorkflowStore) -> TransitionAuthorizationMatrix:
        return cls(catalog, store, store.load_authorizations())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def who_may_perform(self, transition: str) -> frozenset[str]:
        """Roles permitted to perform ``transition``.

        Returns an empty set for an unknown transition.  Use ``is_known`` to
        tell an unknown transition apart; a known one is never empty.
        """
        auth = self._rows.get(transition)
        return auth.role_set if auth is not None else frozenset()

    def ordered_roles(self, transition: str) -> tuple[str, ...]:
        auth = self._rows.get(transition)
        return auth.roles if auth is not None else ()

    def is_known(self, transition: str) -> bool:
        return transition in self._rows

    def is_authorized(self, transition: str, role_name: str) -> bool:
        return role_name in self.who_may_perform(transition)

    def get(self, transition: str) -> TransitionAuthorization:
        auth = self._rows.get(transition)
        if auth is None:
            raise TransitionNotFoundError(transition)
        return auth

    def transitions(self) -> tuple[str, ...]:
        return tuple(self._rows)

    def snapshot(self) -> dict[str, tuple[str, ...]]:
        return {name: auth.roles for name, auth in self._rows.items()}

    # ------------------------------------------------------------------
    # Editor operations
    # ------------------------------------------------------------------

    def grant(self, transition: str, role_name: str) -> TransitionAuthorization:
        """Add ``role_name`` to ``transition``.  Idempotent.

        Granting on a transition the matrix does not know yet defines it with
        the protected role and ``role_name``.
        """
        self._catalog.get(role_name)
        with self._locks.hold(transition):
            current = self._rows.get(transition)
            base = current or TransitionAuthorization(transition, (self._catalog.protected_role,))
            updated = self._with_protected(base).with_role(role_name)
            if updated == current:
                return current
            self._commit(updated)

        self._log_update("grant", transition, current, updated, role_name=role_name)
        return updated

    def revoke(self, transition: str, role_name: str) -> TransitionAuthorization:
        """Remove ``role_name`` from ``transition``.

        Revoking a role that is not in the set is a no-op.
        """
        if self._catalog.is_protected(role_name):
            logger.warning(
                "authorization_edit_rejected",
                extra={"transition": transition, "role_name": role_name, "reason": "protected"},
            )
            raise ProtectedRoleError(role_name, f"revoke from {transition!r}")

        with self._locks.hold(transition):
            current = self.get(transition)
            if not current.includes(role_name):
                return current
            updated = current.without_role(role_name)
            if not updated.roles:
                logger.warning(
                    "authorization_edit_rejected",
                    extra={"transition": transition, "role_name": role_name, "reason": "empty"},
                )
                raise EmptyAuthorizationError(transition, role_name)
            self._commit(updated)

        self._log_update("revoke", transition, current, updated, role_name=role_name)
        return updated

    def replace_role_set(self, transition: str, role_names: Iterable[str]) -> TransitionAuthorization:
        """Replace the whole role set of ``transition``.

        The protected role is placed first when ``role_names`` omits it.
        Every name must exist in the catalog.
        """
        requested = tuple(role_names)
        for name in requested:
            self._catalog.get(name)

        with self._locks.hold(transition):
            current = self._rows.get(transition)
            updated = self._with_protected(TransitionAuthorization(transition, requested))
            if updated == current:
                return current
            self._commit(updated)

        self._log_update(
            "replace_role_set",
            transition,
            current,
            updated,
            protected_role_injected=self._catalog.protected_role not in requested,
        )
        return updated

    def remove_transition(self, transition: str) -> None:
        """Delete the transition definition from the matrix."""
        with self._locks.hold(transition):
            current = self.get(transition)
            self._store.delete_authorization(transition)
            with self._write_lock:
                rows = dict(self._rows)
                del rows[transition]
                self._rows = rows

        logger.info(
            "transition_removed",
            extra={"transition": transition, "roles_before": list(current.roles)},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _with_protected(self, auth: TransitionAuthorization) -> TransitionAuthorization:
        protected = self._catalog.protected_role
        if auth.includes(protected):
            return auth
        return TransitionAuthorization(auth.transition, (protected,) + auth.roles)

    def _commit(self, updated: TransitionAuthorization) -> None:
        self._store.save_authorization(updated)
        with self._write_lock:
            rows = dict(self._rows)
            rows[updated.transition] = updated
            self._rows = rows

    def _log_update(
        self,
        operation: str,
        transition: str,
        before: TransitionAuthorization | None,
        after: TransitionAuthorization,
        **extra: object,
    ) -> None:
        logger.info(
            "transition_authorization_updated",
            extra={
                "operation": operation,
                "transition": transition,
                "roles_before": list(before.roles) if before is not None else [],
                "roles_after": list(after.roles),
                **extra,
            },
        )
