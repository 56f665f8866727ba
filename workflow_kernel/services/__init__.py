"""Services for the workflow kernel (catalog, editors, engine, audit trail)."""

from workflow_kernel.services.audit_trail import AuditTrail
from workflow_kernel.services.authorization_matrix import TransitionAuthorizationMatrix
from workflow_kernel.services.memory_store import InMemoryWorkflowStore
from workflow_kernel.services.permission_editor import PermissionEditor
from workflow_kernel.services.role_catalog import RoleCatalog
from workflow_kernel.services.workflow_engine import WorkflowEngine

__all__ = [
    "AuditTrail",
    "InMemoryWorkflowStore",
    "PermissionEditor",
    "RoleCatalog",
    "TransitionAuthorizationMatrix",
    "WorkflowEngine",
]
