"""Tests for the structured logging system (workflow_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from workflow_kernel.domain.workflow import WorkflowComment, WorkflowStatus
from workflow_kernel.exceptions import UnauthorizedTransitionError
from workflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def stream() -> StringIO:
    """JSON lines written by a freshly configured workflow_kernel handler."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    configure_logging(handler=handler)
    return buffer


def _records(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """One JSON object per line, envelope plus context plus extra."""

    def test_envelope(self, stream):
        get_logger("services.workflow_engine").info("workflow_transition")

        (record,) = _records(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "workflow_transition"
        assert record["logger"] == "workflow_kernel.services.workflow_engine"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_and_enum_values(self, stream):
        get_logger("test").info(
            "workflow_transition",
            extra={"from_status": WorkflowStatus.DRAFT, "sequence": 1},
        )

        (record,) = _records(stream)
        assert record["from_status"] == "draft"
        assert record["sequence"] == 1

    def test_role_sets_sorted_and_non_ascii_kept(self, stream):
        get_logger("test").info(
            "transition_authorization_updated",
            extra={"roles": frozenset({"Éditeur", "Administrateur Système"})},
        )

        assert "Éditeur" in stream.getvalue()
        (record,) = _records(stream)
        assert record["roles"] == ["Administrateur Système", "Éditeur"]

    def test_history_record_serialized_as_mapping(self, stream):
        record = WorkflowComment(
            sequence=1,
            transition="submit",
            action="soumis_pour_revue",
            comment="prêt",
            author_role="Éditeur",
            timestamp=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
            from_status=WorkflowStatus.DRAFT,
            to_status=WorkflowStatus.REVIEW,
        )
        get_logger("test").info("history_appended", extra={"record": record})

        (logged,) = _records(stream)
        assert logged["record"]["action"] == "soumis_pour_revue"
        assert logged["record"]["to_status"] == "review"
        assert logged["record"]["timestamp"] == "2024-01-01T12:00:00+00:00"

    def test_kernel_exception_fields(self, stream):
        try:
            raise UnauthorizedTransitionError("publish", "Éditeur", "page-1")
        except UnauthorizedTransitionError:
            get_logger("test").warning("workflow_transition", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_type"] == "UnauthorizedTransitionError"
        assert record["exc_code"] == "UNAUTHORIZED_TRANSITION"
        assert record["exc_transition"] == "publish"
        assert record["exc_role_name"] == "Éditeur"
        assert record["exc_entity_id"] == "page-1"
        assert "traceback" in record

    def test_plain_exception_has_no_code(self, stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record

    def test_default_level_drops_debug(self, stream):
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second")
        logger.debug("transaction_started")

        assert [r["message"] for r in _records(stream)] == ["first", "second"]

    def test_formatter_standalone(self):
        buffer = StringIO()
        handler = logging.StreamHandler(buffer)
        handler.setFormatter(StructuredFormatter())
        logger = logging.getLogger("standalone_formatter_check")
        logger.addHandler(handler)
        logger.propagate = False
        try:
            logger.warning("outside_namespace")
        finally:
            logger.removeHandler(handler)
        assert json.loads(buffer.getvalue())["message"] == "outside_namespace"


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    """Request-scoped fields attached to every record."""

    def test_context_fields_included(self, stream):
        LogContext.set(actor_role="Réviseur", entity_id="page-1")
        get_logger("test").info("workflow_transition")

        (record,) = _records(stream)
        assert record["actor_role"] == "Réviseur"
        assert record["entity_id"] == "page-1"

    def test_no_context_fields_when_empty(self, stream):
        get_logger("test").info("bare")

        (record,) = _records(stream)
        assert "actor_role" not in record
        assert "correlation_id" not in record

    def test_set_is_additive_and_skips_none(self):
        LogContext.set(correlation_id="c-1")
        LogContext.set(transition="submit", actor_role=None)
        assert LogContext.get_all() == {"correlation_id": "c-1", "transition": "submit"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            request_id="r",
            actor_role="a",
            entity_id="e",
            transition="t",
        )
        assert len(LogContext.get_all()) == 5

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_values(self):
        LogContext.set(actor_role="Éditeur")
        with LogContext.bind(actor_role="Publieur", transition="publish"):
            assert LogContext.get_all() == {"actor_role": "Publieur", "transition": "publish"}
        assert LogContext.get_all() == {"actor_role": "Éditeur"}

    def test_bind_none_leaves_field_alone(self):
        LogContext.set(entity_id="page-1")
        with LogContext.bind(entity_id=None, transition="submit"):
            assert LogContext.get_all()["entity_id"] == "page-1"

    def test_unknown_fields_rejected(self):
        with pytest.raises(TypeError):
            LogContext.bind(event_id="x")
        with pytest.raises(TypeError):
            LogContext.set(role="x")


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("workflow_kernel").handlers) == 1

    def test_child_loggers_inherit_level(self):
        buffer = StringIO()
        configure_logging(handler=logging.StreamHandler(buffer), level=logging.DEBUG)
        get_logger("db.store").debug("entity_saved")

        (record,) = _records(buffer)
        assert record["logger"] == "workflow_kernel.db.store"

    def test_reset_detaches_handler(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        assert logging.getLogger("workflow_kernel").handlers == []
