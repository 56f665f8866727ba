"""
Pytest fixtures for the workflow kernel test suite.

Provides:
- Structured logging configured once per session, with LogContext cleared
  between tests
- An in-memory store seeded with a small scenario catalog
  ("Éditeur", "Réviseur", "Publieur" plus the protected role)
- Wired catalog, editor, matrix, audit trail and engine over that store
- A full ``WorkflowSystem`` built from the default YAML configuration set

Environment Variables:
- WORKFLOW_DATABASE_URL: optional PostgreSQL URL for tests marked
  ``postgres``.  SQL store tests otherwise run against in-memory SQLite.
"""

import json
import logging
from io import StringIO

import pytest

from workflow_kernel.domain.clock import DeterministicClock
from workflow_kernel.domain.roles import (
    DEFAULT_PROTECTED_ROLE,
    Role,
    RoleLevel,
    TransitionAuthorization,
)
from workflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from workflow_kernel.services.audit_trail import AuditTrail
from workflow_kernel.services.authorization_matrix import TransitionAuthorizationMatrix
from workflow_kernel.services.memory_store import InMemoryWorkflowStore
from workflow_kernel.services.permission_editor import PermissionEditor
from workflow_kernel.services.role_catalog import RoleCatalog
from workflow_kernel.services.workflow_engine import WorkflowEngine
from workflow_services.bootstrap import build_workflow_system

PROTECTED = DEFAULT_PROTECTED_ROLE
EDITOR = "Éditeur"
REVIEWER = "Réviseur"
PUBLISHER = "Publieur"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture workflow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine, page):
            engine.apply_transition(page, "submit", EDITOR, "ok")
            logs = captured_logs()
            assert any(r["message"] == "workflow_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("workflow_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock that moves one second forward on every read."""
    return DeterministicClock(step_seconds=1)


# =============================================================================
# Scenario catalog and matrix
# =============================================================================


@pytest.fixture
def scenario_roles() -> tuple[Role, ...]:
    return (
        Role(
            name=PROTECTED,
            description="Accès complet",
            permissions=frozenset({"admin.full_access", "roles.manage"}),
            can_manage_transitions=True,
            module="system",
            level=RoleLevel.SYSTEM,
        ),
        Role(
            name=EDITOR,
            description="Rédige le contenu",
            permissions=frozenset({"portal.edit_content", "workflow.transition.submit"}),
            module="portal",
            level=RoleLevel.MODULE,
        ),
        Role(
            name=REVIEWER,
            description="Relit le contenu",
            permissions=frozenset({"portal.validate"}),
            module="portal",
            level=RoleLevel.MODULE,
        ),
        Role(
            name=PUBLISHER,
            description="Publie le contenu",
            permissions=frozenset({"portal.publish"}),
            can_manage_transitions=True,
            module="portal",
            level=RoleLevel.ADMIN,
        ),
    )


@pytest.fixture
def scenario_authorizations() -> tuple[TransitionAuthorization, ...]:
    return (
        TransitionAuthorization("submit", (PROTECTED, EDITOR)),
        TransitionAuthorization("reject", (PROTECTED, REVIEWER)),
        TransitionAuthorization("validate", (PROTECTED, REVIEWER)),
        TransitionAuthorization("approve", (PROTECTED, PUBLISHER)),
        TransitionAuthorization("publish", (PROTECTED, PUBLISHER)),
        TransitionAuthorization("archive", (PROTECTED, PUBLISHER)),
        TransitionAuthorization("reopen", (PROTECTED,)),
    )


@pytest.fixture
def store(scenario_roles, scenario_authorizations):
    return InMemoryWorkflowStore(scenario_roles, scenario_authorizations)


@pytest.fixture
def catalog(store):
    return RoleCatalog.from_store(store)


@pytest.fixture
def editor(catalog, store):
    return PermissionEditor(catalog, store)


@pytest.fixture
def matrix(catalog, store):
    return TransitionAuthorizationMatrix.from_store(catalog, store)


@pytest.fixture
def audit_trail(store):
    return AuditTrail(store)


@pytest.fixture
def engine(catalog, matrix, audit_trail, store, deterministic_clock):
    return WorkflowEngine(catalog, matrix, audit_trail, store, clock=deterministic_clock)


@pytest.fixture
def page(engine):
    """Page ``page-1`` in draft."""
    return engine.create_entity("page", entity_id="page-1", title="Accueil")


# =============================================================================
# Full system from the default configuration set
# =============================================================================


@pytest.fixture
def system(deterministic_clock):
    return build_workflow_system(clock=deterministic_clock)
