"""
Configuration Validator (``workflow_config.validator``).

Responsibility
--------------
Checks a ``WorkflowConfigurationSet`` before it is used to seed a store,
so that a bad catalog or matrix is rejected at load time instead of
surfacing later as an authorization failure.

Invariants enforced
-------------------
* Role names are unique and non-empty.
* The protected role is declared in the catalog.
* Every authorization references declared roles only, names each
  transition once, and lists at least one role.
* Role levels are among system/admin/module/user.

Failure modes
-------------
* Errors  -> the set MUST NOT be used (``get_active_config`` raises).
* Warnings  -> the set may be used but should be reviewed.  A missing
  protected role in an authorization is a warning because seeding injects
  it; a permission tag outside the ``module.action`` convention is a
  warning because tags are opaque to the kernel.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from workflow_config.schema import WorkflowConfigurationSet
from workflow_kernel.domain.roles import RoleLevel, is_conforming_permission_tag


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: WorkflowConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set; never raises."""
    result = ConfigValidationResult()
    _validate_roles(config, result)
    _validate_authorizations(config, result)
    _validate_action_labels(config, result)
    return result


def _validate_roles(config: WorkflowConfigurationSet, result: ConfigValidationResult) -> None:
    if not config.roles:
        result.add_error("No roles declared")

    counts = Counter(r.name for r in config.roles)
    for name, count in sorted(counts.items()):
        if not name.strip():
            result.add_error("Role with empty name")
        elif count > 1:
            result.add_error(f"Duplicate role name: {name!r} (declared {count} times)")

    if config.protected_role not in counts:
        result.add_error(f"Protected role {config.protected_role!r} is not declared")

    valid_levels = {level.value for level in RoleLevel}
    for role in config.roles:
        if role.level not in valid_levels:
            result.add_error(f"Role {role.name!r} has unknown level {role.level!r}")
        for tag in role.permissions:
            if not tag:
                result.add_error(f"Role {role.name!r} has an empty permission tag")
            elif not is_conforming_permission_tag(tag):
                result.add_warning(
                    f"Role {role.name!r} permission {tag!r} does not follow module.action"
                )


def _validate_authorizations(
    config: WorkflowConfigurationSet, result: ConfigValidationResult
) -> None:
    declared = set(config.role_names())
    counts = Counter(a.transition for a in config.authorizations)
    for transition, count in sorted(counts.items()):
        if count > 1:
            result.add_error(f"Transition {transition!r} authorized {count} times")

    for auth in config.authorizations:
        if not auth.roles:
            result.add_error(f"Transition {auth.transition!r} has an empty role set")
            continue
        for role_name in auth.roles:
            if role_name not in declared:
                result.add_error(
                    f"Transition {auth.transition!r} references unknown role {role_name!r}"
                )
        if config.protected_role not in auth.roles:
            result.add_warning(
                f"Transition {auth.transition!r} omits protected role "
                f"{config.protected_role!r}; it will be added on seeding"
            )


def _validate_action_labels(
    config: WorkflowConfigurationSet, result: ConfigValidationResult
) -> None:
    if not config.action_labels.default.strip():
        result.add_error("Action label default must be non-empty")
    for key, label in config.action_labels.labels:
        if not key.strip() or not label.strip():
            result.add_error(f"Action label entry {key!r}: {label!r} is empty")
