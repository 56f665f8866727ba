"""
workflow_services -- Composition root and administration facade.

Responsibility:
    Wires the workflow kernel from a configuration set and a store, and
    exposes the role-checked entry points used by the admin screens.

Architecture position:
    Services.  Dependency direction:
        workflow_services/ -> workflow_config/  (allowed)
        workflow_services/ -> workflow_kernel/  (allowed)
        workflow_kernel/   -> workflow_services/ (FORBIDDEN)
"""

from workflow_services.admin_facade import WorkflowAdminFacade
from workflow_services.bootstrap import WorkflowSystem, build_workflow_system, seed_store

__all__ = [
    "WorkflowAdminFacade",
    "WorkflowSystem",
    "build_workflow_system",
    "seed_store",
]
