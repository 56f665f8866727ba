"""Tests for TransitionAuthorizationMatrix (workflow_kernel/services/authorization_matrix.py)."""

import pytest

from workflow_kernel.domain.roles import DEFAULT_PROTECTED_ROLE, TransitionAuthorization
from workflow_kernel.domain.workflow import WorkflowStatus
from workflow_kernel.exceptions import (
    ProtectedRoleError,
    RoleNotFoundError,
    TransitionNotFoundError,
)
from workflow_kernel.services.authorization_matrix import TransitionAuthorizationMatrix
from workflow_kernel.services.workflow_engine import WorkflowEngine

PROTECTED = DEFAULT_PROTECTED_ROLE


class TestReads:

    def test_who_may_perform(self, matrix):
        assert matrix.who_may_perform("submit") == frozenset({PROTECTED, "Éditeur"})

    def test_unknown_transition_is_empty_but_not_known(self, matrix):
        assert matrix.who_may_perform("teleport") == frozenset()
        assert not matrix.is_known("teleport")
        assert matrix.is_known("submit")

    def test_get_unknown_raises(self, matrix):
        with pytest.raises(TransitionNotFoundError) as exc_info:
            matrix.get("teleport")
        assert exc_info.value.transition == "teleport"

    def test_ordered_roles_and_snapshot(self, matrix):
        assert matrix.ordered_roles("approve") == (PROTECTED, "Publieur")
        snapshot = matrix.snapshot()
        assert snapshot["reopen"] == (PROTECTED,)
        assert tuple(snapshot) == matrix.transitions()

    def test_protected_role_authorized_everywhere(self, matrix):
        for transition in matrix.transitions():
            assert matrix.is_authorized(transition, PROTECTED)


class TestGrant:

    def test_adds_role(self, matrix, store):
        auth = matrix.grant("validate", "Éditeur")
        assert auth.roles == (PROTECTED, "Réviseur", "Éditeur")
        stored = {a.transition: a for a in store.load_authorizations()}
        assert stored["validate"] == auth

    def test_idempotent(self, matrix):
        once = matrix.grant("validate", "Éditeur")
        twice = matrix.grant("validate", "Éditeur")
        assert once == twice
        assert matrix.who_may_perform("validate") == frozenset({PROTECTED, "Réviseur", "Éditeur"})

    def test_unknown_role(self, matrix):
        with pytest.raises(RoleNotFoundError):
            matrix.grant("validate", "Fantôme")
        assert "Fantôme" not in matrix.who_may_perform("validate")

    def test_new_transition_includes_protected_role(self, matrix):
        auth = matrix.grant("assign", "Réviseur")
        assert auth.roles == (PROTECTED, "Réviseur")
        assert matrix.is_known("assign")


class TestRevoke:

    def test_removes_role(self, matrix, store):
        auth = matrix.revoke("submit", "Éditeur")
        assert "Éditeur" not in matrix.who_may_perform("submit")
        assert auth.roles == (PROTECTED,)
        stored = {a.transition: a for a in store.load_authorizations()}
        assert stored["submit"].roles == (PROTECTED,)

    def test_protected_role_rejected_and_unchanged(self, matrix):
        before = matrix.snapshot()
        with pytest.raises(ProtectedRoleError):
            matrix.revoke("publish", PROTECTED)
        assert matrix.snapshot() == before

    def test_absent_role_is_noop(self, matrix):
        before = matrix.get("submit")
        assert matrix.revoke("submit", "Réviseur") == before

    def test_unknown_transition(self, matrix):
        with pytest.raises(TransitionNotFoundError):
            matrix.revoke("teleport", "Éditeur")

    def test_row_missing_protected_role_repaired_on_load(
        self, catalog, store, audit_trail, deterministic_clock, captured_logs
    ):
        stored_row = TransitionAuthorization("submit", ("Éditeur",))
        matrix = TransitionAuthorizationMatrix(catalog, store, [stored_row])
        assert "authorization_missing_protected_role" in [r["message"] for r in captured_logs()]
        assert matrix.ordered_roles("submit") == (PROTECTED, "Éditeur")

        engine = WorkflowEngine(catalog, matrix, audit_trail, store, clock=deterministic_clock)
        engine.create_entity("page", entity_id="p")
        entity = engine.apply_transition("p", "submit", PROTECTED, "ok")
        assert entity.status is WorkflowStatus.REVIEW

        auth = matrix.revoke("submit", "Éditeur")
        assert auth.roles == (PROTECTED,)

    def test_empty_row_repaired_on_load(self, catalog, store, captured_logs):
        matrix = TransitionAuthorizationMatrix(
            catalog, store, [TransitionAuthorization("cancel", ())]
        )
        assert matrix.who_may_perform("cancel") == frozenset({PROTECTED})
        assert "authorization_empty_on_load" in [r["message"] for r in captured_logs()]


class TestReplaceRoleSet:

    def test_injects_protected_role(self, matrix):
        auth = matrix.replace_role_set("approve", {"Réviseur"})
        assert matrix.who_may_perform("approve") == frozenset({"Réviseur", PROTECTED})
        assert auth.roles[0] == PROTECTED

    def test_empty_set_leaves_protected_role(self, matrix):
        matrix.replace_role_set("approve", [])
        assert matrix.who_may_perform("approve") == frozenset({PROTECTED})

    def test_keeps_given_order(self, matrix):
        auth = matrix.replace_role_set("approve", ["Publieur", PROTECTED, "Réviseur"])
        assert auth.roles == ("Publieur", PROTECTED, "Réviseur")

    def test_unknown_role_rejected_without_change(self, matrix):
        before = matrix.get("approve")
        with pytest.raises(RoleNotFoundError):
            matrix.replace_role_set("approve", ["Réviseur", "Fantôme"])
        assert matrix.get("approve") == before

    def test_logs_injection(self, matrix, captured_logs):
        matrix.replace_role_set("approve", ["Réviseur"])
        records = [
            r for r in captured_logs() if r["message"] == "transition_authorization_updated"
        ]
        assert records[-1]["operation"] == "replace_role_set"
        assert records[-1]["protected_role_injected"] is True
        assert records[-1]["roles_before"] == [PROTECTED, "Publieur"]
        assert records[-1]["roles_after"] == [PROTECTED, "Réviseur"]


class TestRemoveTransition:

    def test_removes_definition(self, matrix, store):
        matrix.remove_transition("archive")
        assert not matrix.is_known("archive")
        assert "archive" not in {a.transition for a in store.load_authorizations()}

    def test_unknown_transition(self, matrix):
        with pytest.raises(TransitionNotFoundError):
            matrix.remove_transition("teleport")

    def test_reload_from_store_sees_edits(self, matrix, catalog, store):
        matrix.grant("validate", "Éditeur")
        matrix.remove_transition("archive")
        reloaded = TransitionAuthorizationMatrix.from_store(catalog, store)
        assert reloaded.snapshot() == matrix.snapshot()
