"""
Config -> Kernel Bridges.

Functions that convert a ``WorkflowConfigurationSet`` into kernel records.
They live in workflow_config (the producer) because the kernel must never
import workflow_config.

Usage:
    from workflow_config.bridges import to_roles, to_authorizations

    config = get_active_config()
    store = InMemoryWorkflowStore(to_roles(config), to_authorizations(config))
"""

from __future__ import annotations

from workflow_config.schema import WorkflowConfigurationSet
from workflow_kernel.domain.roles import Role, RoleLevel, TransitionAuthorization
from workflow_kernel.domain.workflow import ActionLabels


def to_roles(config: WorkflowConfigurationSet) -> tuple[Role, ...]:
    return tuple(
        Role(
            name=r.name,
            description=r.description,
            permissions=frozenset(r.permissions),
            can_manage_transitions=r.can_manage_transitions,
            module=r.module,
            level=RoleLevel(r.level),
        )
        for r in config.roles
    )


def to_authorizations(config: WorkflowConfigurationSet) -> tuple[TransitionAuthorization, ...]:
    """Matrix rows with the protected role placed first when a row omits it."""
    rows = []
    for auth in config.authorizations:
        roles = auth.roles
        if config.protected_role not in roles:
            roles = (config.protected_role,) + roles
        rows.append(TransitionAuthorization(auth.transition, roles))
    return tuple(rows)


def to_action_labels(config: WorkflowConfigurationSet) -> ActionLabels:
    return ActionLabels(
        labels=dict(config.action_labels.labels),
        default=config.action_labels.default,
    )
