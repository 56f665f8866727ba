"""
Tests for the YAML configuration pipeline (workflow_config/).

Covers loading the shipped default set, checksum determinism, validation
errors and warnings, and the bridges into kernel records.
"""

from pathlib import Path

import pytest
import yaml

from workflow_config import ConfigurationError, get_active_config, validate_configuration
from workflow_config.bridges import to_action_labels, to_authorizations, to_roles
from workflow_config.loader import load_configuration_set
from workflow_kernel.domain.roles import DEFAULT_PROTECTED_ROLE, RoleLevel

PROTECTED = DEFAULT_PROTECTED_ROLE


def _write_set(base: Path, roles, authorizations, labels=None, root=None) -> Path:
    set_dir = base / "custom"
    set_dir.mkdir(parents=True)
    root = root or {
        "config_id": "TEST-SET",
        "version": 3,
        "protected_role": PROTECTED,
    }
    (set_dir / "root.yaml").write_text(yaml.safe_dump(root, allow_unicode=True), "utf-8")
    (set_dir / "roles.yaml").write_text(
        yaml.safe_dump({"roles": roles}, allow_unicode=True), "utf-8"
    )
    (set_dir / "authorizations.yaml").write_text(
        yaml.safe_dump({"authorizations": authorizations}, allow_unicode=True), "utf-8"
    )
    if labels is not None:
        (set_dir / "action_labels.yaml").write_text(
            yaml.safe_dump(labels, allow_unicode=True), "utf-8"
        )
    return set_dir


MINIMAL_ROLES = [
    {"name": PROTECTED, "level": "system", "permissions": ["admin.full_access"],
     "can_manage_transitions": True},
    {"name": "Éditeur", "module": "portal", "permissions": ["portal.edit_content"]},
]


class TestDefaultSet:

    def test_loads_and_validates(self):
        config = get_active_config()
        assert config.config_id == "CMS-WORKFLOW-DEFAULT"
        assert config.protected_role == PROTECTED
        assert PROTECTED in config.role_names()
        assert validate_configuration(config).is_valid

    def test_covers_every_lifecycle_transition(self):
        transitions = {a.transition for a in get_active_config().authorizations}
        assert {
            "submit", "reject", "validate", "approve", "publish", "archive", "reopen",
        } <= transitions

    def test_checksum_is_deterministic(self):
        assert get_active_config().checksum == get_active_config().checksum

    def test_trace_emitted(self, captured_logs):
        config = get_active_config()
        trace = [r for r in captured_logs() if r["message"] == "WORKFLOW_CONFIG_TRACE"][-1]
        assert trace["config_set_id"] == config.config_id
        assert trace["checksum"] == config.checksum
        assert trace["role_count"] == len(config.roles)

    def test_unknown_set(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_active_config("nonexistent")
        assert exc_info.value.code == "CONFIG_INVALID"


class TestCustomSets:

    def test_minimal_set(self, tmp_path):
        _write_set(
            tmp_path,
            MINIMAL_ROLES,
            [{"transition": "submit", "roles": [PROTECTED, "Éditeur"]}],
            labels={"default": "fait", "labels": {"submit": "envoyé"}},
        )
        config = get_active_config("custom", config_dir=tmp_path)
        assert config.version == 3
        assert config.roles[1].module == "portal"
        assert config.roles[1].level == "user"
        assert config.action_labels.default == "fait"

    def test_action_labels_optional(self, tmp_path):
        set_dir = _write_set(
            tmp_path, MINIMAL_ROLES, [{"transition": "submit", "roles": ["Éditeur"]}]
        )
        config = load_configuration_set(set_dir)
        assert config.action_labels.labels == ()
        assert config.action_labels.default == "transition_effectuée"

    def test_checksum_changes_with_content(self, tmp_path):
        first = load_configuration_set(
            _write_set(tmp_path / "a", MINIMAL_ROLES, [{"transition": "submit", "roles": ["Éditeur"]}])
        )
        second = load_configuration_set(
            _write_set(tmp_path / "b", MINIMAL_ROLES, [{"transition": "cancel", "roles": ["Éditeur"]}])
        )
        assert first.checksum != second.checksum

    def test_unknown_role_reference_is_an_error(self, tmp_path):
        _write_set(tmp_path, MINIMAL_ROLES, [{"transition": "submit", "roles": ["Fantôme"]}])
        with pytest.raises(ConfigurationError) as exc_info:
            get_active_config("custom", config_dir=tmp_path)
        assert any("Fantôme" in p for p in exc_info.value.problems)

    def test_missing_protected_role_is_an_error(self, tmp_path):
        _write_set(tmp_path, MINIMAL_ROLES[1:], [{"transition": "submit", "roles": ["Éditeur"]}])
        with pytest.raises(ConfigurationError):
            get_active_config("custom", config_dir=tmp_path)

    def test_duplicate_role_and_empty_set_are_errors(self, tmp_path):
        set_dir = _write_set(
            tmp_path,
            MINIMAL_ROLES + [{"name": "Éditeur"}],
            [{"transition": "submit", "roles": []}],
        )
        result = validate_configuration(load_configuration_set(set_dir))
        assert not result.is_valid
        assert any("Duplicate role" in e for e in result.errors)
        assert any("empty role set" in e for e in result.errors)

    def test_warnings_do_not_block(self, tmp_path, captured_logs):
        roles = [dict(MINIMAL_ROLES[0]), {"name": "Éditeur", "permissions": ["legacy"]}]
        _write_set(tmp_path, roles, [{"transition": "submit", "roles": ["Éditeur"]}])
        config = get_active_config("custom", config_dir=tmp_path)
        result = validate_configuration(config)
        assert result.is_valid
        assert len(result.warnings) == 2
        assert "config_validation_warning" in [r["message"] for r in captured_logs()]

    def test_missing_required_key(self, tmp_path):
        _write_set(tmp_path, [{"description": "sans nom"}], [])
        with pytest.raises(ConfigurationError):
            get_active_config("custom", config_dir=tmp_path)

    def test_roles_must_be_a_list_of_names(self, tmp_path):
        _write_set(tmp_path, MINIMAL_ROLES, [{"transition": "submit", "roles": "Éditeur"}])
        with pytest.raises(ConfigurationError):
            get_active_config("custom", config_dir=tmp_path)


class TestBridges:

    def test_roles(self):
        roles = {r.name: r for r in to_roles(get_active_config())}
        admin = roles[PROTECTED]
        assert admin.level is RoleLevel.SYSTEM
        assert admin.can_manage_transitions
        assert "roles.manage" in admin.permissions

    def test_authorizations_inject_protected_role(self, tmp_path):
        set_dir = _write_set(
            tmp_path, MINIMAL_ROLES, [{"transition": "submit", "roles": ["Éditeur"]}]
        )
        (auth,) = to_authorizations(load_configuration_set(set_dir))
        assert auth.roles == (PROTECTED, "Éditeur")

    def test_action_labels(self):
        labels = to_action_labels(get_active_config())
        assert labels.label_for("reject", "draft") == "renvoyé_en_brouillon"
        assert labels.label_for("assign", "review") == "transition_effectuée"
