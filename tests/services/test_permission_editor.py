"""Tests for PermissionEditor (workflow_kernel/services/permission_editor.py)."""

import pytest

from workflow_kernel.domain.roles import DEFAULT_PROTECTED_ROLE
from workflow_kernel.exceptions import (
    InvalidPermissionTagError,
    ProtectedRoleError,
    RoleNotFoundError,
)

PROTECTED = DEFAULT_PROTECTED_ROLE


class TestSetPermissions:

    def test_replaces_whole_set(self, editor, catalog, store):
        updated = editor.set_permissions("Réviseur", ["portal.validate", "portal.reject"])
        assert updated.permissions == frozenset({"portal.validate", "portal.reject"})
        assert catalog.get("Réviseur") == updated
        stored = {r.name: r for r in store.load_roles()}
        assert stored["Réviseur"] == updated

    def test_other_fields_untouched(self, editor, catalog):
        before = catalog.get("Réviseur")
        after = editor.set_permissions("Réviseur", ["x.y"])
        assert after.description == before.description
        assert after.module == before.module
        assert after.level == before.level
        assert after.can_manage_transitions == before.can_manage_transitions

    def test_protected_role_rejected_and_unchanged(self, editor, catalog, store):
        before = catalog.get(PROTECTED)
        with pytest.raises(ProtectedRoleError) as exc_info:
            editor.set_permissions(PROTECTED, [])
        assert exc_info.value.role_name == PROTECTED
        assert catalog.get(PROTECTED) == before
        assert {r.name: r for r in store.load_roles()}[PROTECTED] == before

    def test_protected_check_precedes_tag_validation(self, editor):
        with pytest.raises(ProtectedRoleError):
            editor.set_permissions(PROTECTED, ["not a tag"])

    def test_invalid_tag_rejected_without_change(self, editor, catalog):
        before = catalog.get("Éditeur")
        with pytest.raises(InvalidPermissionTagError):
            editor.set_permissions("Éditeur", ["portal.edit_content", "bad"])
        assert catalog.get("Éditeur") == before

    def test_unknown_role(self, editor):
        with pytest.raises(RoleNotFoundError):
            editor.set_permissions("Fantôme", ["a.b"])

    def test_logs_before_and_after(self, editor, captured_logs):
        editor.set_permissions("Réviseur", ["portal.validate", "portal.reject"])
        records = [r for r in captured_logs() if r["message"] == "role_permissions_updated"]
        assert len(records) == 1
        assert records[0]["role_name"] == "Réviseur"
        assert records[0]["permissions_before"] == ["portal.validate"]
        assert records[0]["permissions_after"] == ["portal.reject", "portal.validate"]

    def test_tags_and_flag_in_one_write(self, monkeypatch, editor, catalog, store, captured_logs):
        saved = []
        save_role = store.save_role
        monkeypatch.setattr(store, "save_role", lambda role: (saved.append(role), save_role(role)))

        updated = editor.set_permissions(
            "Réviseur", ["portal.validate", "portal.reject"], can_manage_transitions=True
        )
        assert saved == [updated]
        assert updated.can_manage_transitions
        assert updated.permissions == frozenset({"portal.validate", "portal.reject"})
        assert catalog.get("Réviseur") == updated
        records = [r for r in captured_logs() if r["message"] == "role_permissions_updated"]
        assert len(records) == 1
        assert records[0]["can_manage_transitions"] is True


class TestCanManageTransitions:

    def test_toggle(self, editor, catalog):
        assert editor.set_can_manage_transitions("Réviseur", True).can_manage_transitions
        assert catalog.get("Réviseur").can_manage_transitions

    def test_protected_role_rejected(self, editor, catalog):
        with pytest.raises(ProtectedRoleError):
            editor.set_can_manage_transitions(PROTECTED, False)
        assert catalog.get(PROTECTED).can_manage_transitions


class TestAddRemove:

    def test_add_duplicate_is_noop(self, editor, catalog, captured_logs):
        before = catalog.get("Éditeur")
        after = editor.add_permission("Éditeur", "portal.edit_content")
        assert after == before
        messages = [r["message"] for r in captured_logs()]
        assert "role_edit_noop" in messages
        assert "role_permissions_updated" not in messages

    def test_add_new_tag(self, editor):
        role = editor.add_permission("Éditeur", "portal.preview")
        assert "portal.preview" in role.permissions

    def test_add_invalid_tag(self, editor):
        with pytest.raises(InvalidPermissionTagError):
            editor.add_permission("Éditeur", "preview")

    def test_remove_tag(self, editor):
        role = editor.remove_permission("Éditeur", "portal.edit_content")
        assert role.permissions == frozenset({"workflow.transition.submit"})

    def test_remove_absent_tag_is_noop(self, editor, catalog):
        before = catalog.get("Éditeur")
        assert editor.remove_permission("Éditeur", "portal.nothing") == before

    @pytest.mark.parametrize("operation", ["add_permission", "remove_permission"])
    def test_protected_role_rejected(self, editor, catalog, operation):
        before = catalog.get(PROTECTED)
        with pytest.raises(ProtectedRoleError):
            getattr(editor, operation)(PROTECTED, "admin.full_access")
        assert catalog.get(PROTECTED) == before
