"""
workflow_services.bootstrap -- Composition root for the workflow kernel.

Responsibility:
    Creates every kernel service exactly once and wires them together over
    one store, one clock and one configuration set.  No kernel service
    constructs another service internally.

Architecture position:
    Services.  The only place where workflow_config and workflow_kernel
    meet: configuration is translated through ``workflow_config.bridges``
    and handed to the kernel as plain records.

Invariants enforced:
    - Single-instance lifecycle: one catalog, one matrix, one engine per
      ``WorkflowSystem``; all share the same store and clock.
    - An empty store is seeded from configuration before the catalog and
      matrix load, and every seeded authorization row includes the
      protected role.
    - A store that already holds roles or authorizations is never
      overwritten by configuration.

Failure modes:
    - ConfigurationError if the default configuration set is invalid.
    - RoleNotFoundError if the store's catalog lacks the protected role.

Usage:
    system = build_workflow_system()
    page = system.engine.create_entity("page", title="Accueil")
    system.engine.apply_transition(page, "submit", "Éditeur Contenu", "prêt")
"""

from __future__ import annotations

from dataclasses import dataclass

from workflow_config import get_active_config
from workflow_config.bridges import to_action_labels, to_authorizations, to_roles
from workflow_config.schema import WorkflowConfigurationSet
from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.store import WorkflowStore
from workflow_kernel.logging_config import get_logger
from workflow_kernel.services.audit_trail import AuditTrail
from workflow_kernel.services.authorization_matrix import TransitionAuthorizationMatrix
from workflow_kernel.services.memory_store import InMemoryWorkflowStore
from workflow_kernel.services.permission_editor import PermissionEditor
from workflow_kernel.services.role_catalog import RoleCatalog
from workflow_kernel.services.workflow_engine import WorkflowEngine

logger = get_logger("services.bootstrap")


@dataclass(frozen=True)
class WorkflowSystem:
    """Every wired service of one workflow deployment."""

    config: WorkflowConfigurationSet
    store: WorkflowStore
    clock: Clock
    catalog: RoleCatalog
    editor: PermissionEditor
    matrix: TransitionAuthorizationMatrix
    audit_trail: AuditTrail
    engine: WorkflowEngine


def seed_store(store: WorkflowStore, config: WorkflowConfigurationSet) -> bool:
    """Write the configured catalog and matrix into an empty store.

    Returns:
        True if anything was written.
    """
    seeded = False
    if not store.load_roles():
        for role in to_roles(config):
            store.save_role(role)
        seeded = True
    if not store.load_authorizations():
        for authorization in to_authorizations(config):
            store.save_authorization(authorization)
        seeded = True
    if seeded:
        logger.info(
            "workflow_store_seeded",
            extra={
                "config_set_id": config.config_id,
                "config_set_version": config.version,
                "checksum": config.checksum,
            },
        )
    return seeded


def build_workflow_system(
    config: WorkflowConfigurationSet | None = None,
    store: WorkflowStore | None = None,
    clock: Clock | None = None,
) -> WorkflowSystem:
    """Build a ``WorkflowSystem`` over ``store`` (in-memory by default)."""
    config = config or get_active_config()
    store = store if store is not None else InMemoryWorkflowStore()
    clock = clock or SystemClock()

    seed_store(store, config)

    catalog = RoleCatalog.from_store(store, protected_role=config.protected_role)
    editor = PermissionEditor(catalog, store)
    matrix = TransitionAuthorizationMatrix.from_store(catalog, store)
    audit_trail = AuditTrail(store)
    engine = WorkflowEngine(
        catalog,
        matrix,
        audit_trail,
        store,
        clock=clock,
        action_labels=to_action_labels(config),
    )

    logger.info(
        "workflow_system_built",
        extra={
            "config_set_id": config.config_id,
            "protected_role": catalog.protected_role,
            "role_count": len(catalog.names()),
            "transition_count": len(matrix.transitions()),
        },
    )
    return WorkflowSystem(
        config=config,
        store=store,
        clock=clock,
        catalog=catalog,
        editor=editor,
        matrix=matrix,
        audit_trail=audit_trail,
        engine=engine,
    )
