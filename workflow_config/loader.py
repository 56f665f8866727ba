"""
Configuration Loader (``workflow_config.loader``).

Responsibility
--------------
Loads the YAML fragment files of one configuration set and parses them into
typed ``workflow_config.schema`` dataclass instances.  This is build/test
tooling: runtime callers go through ``workflow_config.get_active_config()``.

Architecture position
---------------------
**Config layer**.  Depends on PyYAML, ``workflow_kernel.exceptions`` and
``workflow_kernel.utils.hashing``; never on kernel services.

Invariants enforced
-------------------
* No silent defaults for required fields: a missing ``name``,
  ``transition`` or ``roles`` key raises ``ConfigurationError``.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` is deterministic for identical fragment contents.

Failure modes
-------------
* Missing fragment file  -> ``ConfigurationError`` (wrapping FileNotFoundError).
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structural problems  -> ``ConfigurationError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from workflow_config.schema import (
    ActionLabelsDef,
    AuthorizationDef,
    RoleDef,
    WorkflowConfigurationSet,
)
from workflow_kernel.exceptions import WorkflowKernelError
from workflow_kernel.utils.hashing import fragments_digest

ROOT_FILE = "root.yaml"
ROLES_FILE = "roles.yaml"
AUTHORIZATIONS_FILE = "authorizations.yaml"
ACTION_LABELS_FILE = "action_labels.yaml"


class ConfigurationError(WorkflowKernelError):
    """A configuration set could not be loaded or failed validation."""

    code: str = "CONFIG_INVALID"

    def __init__(self, source: str, problems: list[str] | str):
        self.source = source
        self.problems = [problems] if isinstance(problems, str) else list(problems)
        super().__init__(
            f"Invalid workflow configuration {source}:\n"
            + "\n".join(f"  - {p}" for p in self.problems)
        )


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level YAML node must be a mapping")
    return data


def _require(data: dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigurationError(where, f"expected a mapping, got {data!r}")
    if key not in data or data[key] is None:
        raise ConfigurationError(where, f"missing required key {key!r}")
    return data[key]


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(where, f"expected a list of strings, got {value!r}")
    return tuple(str(v) for v in value)


def parse_role(data: dict[str, Any]) -> RoleDef:
    """Parse a ``RoleDef`` from one entry of roles.yaml."""
    name = str(_require(data, "name", ROLES_FILE))
    return RoleDef(
        name=name,
        permissions=_string_list(data.get("permissions", []), f"role {name!r}"),
        description=str(data.get("description", "")),
        can_manage_transitions=bool(data.get("can_manage_transitions", False)),
        module=str(data.get("module", "general")),
        level=str(data.get("level", "user")),
    )


def parse_authorization(data: dict[str, Any]) -> AuthorizationDef:
    """Parse an ``AuthorizationDef`` from one entry of authorizations.yaml."""
    transition = str(_require(data, "transition", AUTHORIZATIONS_FILE))
    roles = _require(data, "roles", f"transition {transition!r}")
    return AuthorizationDef(
        transition=transition,
        roles=_string_list(roles, f"transition {transition!r}"),
    )


def parse_action_labels(data: dict[str, Any]) -> ActionLabelsDef:
    labels = data.get("labels", {}) or {}
    if not isinstance(labels, dict):
        raise ConfigurationError(ACTION_LABELS_FILE, "'labels' must be a mapping")
    return ActionLabelsDef(
        labels=tuple((str(k), str(v)) for k, v in labels.items()),
        default=str(data.get("default", ActionLabelsDef.default)),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    return fragments_digest(data)


def load_configuration_set(directory: Path) -> WorkflowConfigurationSet:
    """
    Assemble a ``WorkflowConfigurationSet`` from the fragments in ``directory``.

    ``action_labels.yaml`` is optional; the other three fragments are required.

    Raises:
        ConfigurationError: on missing fragments or structural problems.
    """
    fragments: dict[str, dict[str, Any]] = {}
    for name in (ROOT_FILE, ROLES_FILE, AUTHORIZATIONS_FILE):
        path = directory / name
        if not path.exists():
            raise ConfigurationError(str(directory), f"missing fragment {name}")
        fragments[name] = load_yaml_file(path)

    labels_path = directory / ACTION_LABELS_FILE
    fragments[ACTION_LABELS_FILE] = load_yaml_file(labels_path) if labels_path.exists() else {}

    root = fragments[ROOT_FILE]
    roles_raw = fragments[ROLES_FILE].get("roles", []) or []
    auth_raw = fragments[AUTHORIZATIONS_FILE].get("authorizations", []) or []
    if not isinstance(roles_raw, list):
        raise ConfigurationError(ROLES_FILE, "'roles' must be a list")
    if not isinstance(auth_raw, list):
        raise ConfigurationError(AUTHORIZATIONS_FILE, "'authorizations' must be a list")

    try:
        version = int(_require(root, "version", ROOT_FILE))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(ROOT_FILE, f"version must be an integer: {exc}") from exc

    return WorkflowConfigurationSet(
        config_id=str(_require(root, "config_id", ROOT_FILE)),
        version=version,
        checksum=compute_checksum(fragments),
        protected_role=str(_require(root, "protected_role", ROOT_FILE)),
        roles=tuple(parse_role(r) for r in roles_raw),
        authorizations=tuple(parse_authorization(a) for a in auth_raw),
        action_labels=parse_action_labels(fragments[ACTION_LABELS_FILE]),
        description=str(root.get("description", "")),
    )
