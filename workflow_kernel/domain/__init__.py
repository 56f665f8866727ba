"""
Pure domain layer.

This module contains pure value objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except through the injected Clock)
- I/O

All domain objects are immutable.
"""

from workflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from workflow_kernel.domain.roles import (
    DEFAULT_PROTECTED_ROLE,
    Role,
    RoleLevel,
    TransitionAuthorization,
    is_conforming_permission_tag,
    validate_permission_tag,
)
from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.domain.workflow import (
    CONTENT_LIFECYCLE,
    ActionLabels,
    EntityKind,
    Lifecycle,
    Transition,
    WorkflowComment,
    WorkflowStatus,
    WorkflowableEntity,
)

__all__ = [
    "ActionLabels",
    "CONTENT_LIFECYCLE",
    "Clock",
    "DEFAULT_PROTECTED_ROLE",
    "DeterministicClock",
    "EntityKind",
    "Lifecycle",
    "Role",
    "RoleLevel",
    "SystemClock",
    "Transition",
    "TransitionAuthorization",
    "WorkflowComment",
    "WorkflowStatus",
    "WorkflowStore",
    "WorkflowableEntity",
    "is_conforming_permission_tag",
    "validate_permission_tag",
]
