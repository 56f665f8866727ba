"""
WorkflowConfigurationSet schema.

Defines the human-authored, reviewable source artifact for the workflow
kernel: the role catalog seed, the transition authorization matrix seed and
the action label table.  YAML fragments are parsed into these types by the
loader, checked by the validator and turned into kernel records by the
bridges.

Key distinction:
  WorkflowConfigurationSet = source artifact (human-authored, versioned)
  Role / TransitionAuthorization / ActionLabels = kernel records
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoleDef:
    """Single role definition as written in roles.yaml."""

    name: str
    permissions: tuple[str, ...] = ()
    description: str = ""
    can_manage_transitions: bool = False
    module: str = "general"
    level: str = "user"


# ---------------------------------------------------------------------------
# Authorizations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthorizationDef:
    """One transition and the roles allowed to perform it, in listed order."""

    transition: str
    roles: tuple[str, ...]


@dataclass(frozen=True)
class ActionLabelsDef:
    """Transition -> audit action label table."""

    labels: tuple[tuple[str, str], ...] = ()
    default: str = "transition_effectuée"


# ---------------------------------------------------------------------------
# Top-level configuration set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowConfigurationSet:
    """Human-authored source artifact for workflow configuration.

    Attributes:
        config_id: Unique identifier (e.g., "CMS-WORKFLOW-DEFAULT")
        version: Configuration version number
        checksum: SHA-256 of canonical serialization of all fragments
        protected_role: Name of the role that can never be stripped
        roles: Role catalog seed
        authorizations: Authorization matrix seed
        action_labels: Audit action label table
    """

    config_id: str
    version: int
    checksum: str
    protected_role: str
    roles: tuple[RoleDef, ...]
    authorizations: tuple[AuthorizationDef, ...]
    action_labels: ActionLabelsDef = field(default_factory=ActionLabelsDef)
    description: str = ""

    def role_names(self) -> tuple[str, ...]:
        return tuple(r.name for r in self.roles)
