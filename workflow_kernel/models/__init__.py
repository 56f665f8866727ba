"""SQLAlchemy models for the workflow store adapter."""

from workflow_kernel.models.authorization import TransitionModel, TransitionRoleModel
from workflow_kernel.models.content import WorkflowCommentModel, WorkflowEntityModel
from workflow_kernel.models.role import RoleModel, RolePermissionModel

__all__ = [
    "RoleModel",
    "RolePermissionModel",
    "TransitionModel",
    "TransitionRoleModel",
    "WorkflowCommentModel",
    "WorkflowEntityModel",
]
