"""
Canonical workflow types (``workflow_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the content lifecycle: statuses, entity kinds,
transition edges, the lifecycle definition itself, history records and the
workflowable entity.  The ``CONTENT_LIFECYCLE`` table is the single source of
truth for which transition is legal from which status.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only statuses declared by the lifecycle.
* A (from_status, transition name) pair has exactly one target.
* ``WorkflowableEntity.history`` is ordered by ``sequence`` starting at 1.
* History records carry timezone-aware timestamps and non-blank comments.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Mapping

from workflow_kernel.exceptions import InvalidRecordError


class WorkflowStatus(str, Enum):
    """Lifecycle status of a workflowable entity."""

    DRAFT = "draft"
    REVIEW = "review"
    READY = "ready"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class EntityKind(str, Enum):
    """Content kinds that follow the lifecycle."""

    PAGE = "page"
    NEWS = "news"
    EVENT = "event"


@dataclass(frozen=True)
class Transition:
    """A legal edge in the lifecycle.

    Contract: frozen.  The same ``name`` may appear on several edges with
    different ``from_status`` values (``reject`` does).
    """
    name: str
    from_status: WorkflowStatus
    to_status: WorkflowStatus


@dataclass(frozen=True)
class Lifecycle:
    """A state machine definition for content.

    Contract: frozen; ``transitions`` reference only ``statuses``.
    Guarantees: ``initial_status`` is a member of ``statuses`` and no
    (from_status, name) pair is declared twice.
    """
    name: str
    initial_status: WorkflowStatus
    statuses: tuple[WorkflowStatus, ...]
    transitions: tuple[Transition, ...]

    def __post_init__(self) -> None:
        if self.initial_status not in self.statuses:
            raise InvalidRecordError("Lifecycle", "initial status is not a declared status")
        seen: set[tuple[WorkflowStatus, str]] = set()
        for t in self.transitions:
            if t.from_status not in self.statuses or t.to_status not in self.statuses:
                raise InvalidRecordError(
                    "Lifecycle", f"transition {t.name!r} references an undeclared status"
                )
            key = (t.from_status, t.name)
            if key in seen:
                raise InvalidRecordError(
                    "Lifecycle", f"transition {t.name!r} declared twice from {t.from_status.value!r}"
                )
            seen.add(key)

    def legal_from(self, status: WorkflowStatus) -> tuple[str, ...]:
        """Transition names legal from ``status``, in declaration order."""
        return tuple(t.name for t in self.transitions if t.from_status == status)

    def target(self, status: WorkflowStatus, transition: str) -> WorkflowStatus | None:
        """Target status of ``transition`` from ``status``, or None if illegal."""
        for t in self.transitions:
            if t.from_status == status and t.name == transition:
                return t.to_status
        return None

    @property
    def transition_names(self) -> tuple[str, ...]:
        names: list[str] = []
        for t in self.transitions:
            if t.name not in names:
                names.append(t.name)
        return tuple(names)


_S = WorkflowStatus

CONTENT_LIFECYCLE = Lifecycle(
    name="content",
    initial_status=_S.DRAFT,
    statuses=tuple(WorkflowStatus),
    transitions=(
        Transition("submit", _S.DRAFT, _S.REVIEW),
        Transition("reject", _S.REVIEW, _S.DRAFT),
        Transition("validate", _S.REVIEW, _S.READY),
        Transition("reject", _S.READY, _S.REVIEW),
        Transition("approve", _S.READY, _S.PUBLISHED),
        Transition("publish", _S.READY, _S.PUBLISHED),
        Transition("archive", _S.PUBLISHED, _S.ARCHIVED),
        Transition("reopen", _S.ARCHIVED, _S.DRAFT),
    ),
)


# ---------------------------------------------------------------------------
# Action labels
# ---------------------------------------------------------------------------

DEFAULT_ACTION_LABELS: Mapping[str, str] = {
    "submit": "soumis_pour_revue",
    "validate": "validé",
    "approve": "publié",
    "publish": "publié",
    "archive": "archivé",
    "reopen": "rouvert",
    "reject->draft": "renvoyé_en_brouillon",
    "reject->review": "renvoyé_en_revue",
}

DEFAULT_FALLBACK_LABEL = "transition_effectuée"


@dataclass(frozen=True)
class ActionLabels:
    """Derivation table from a transition to its audit ``action`` label.

    Lookup order: ``"<transition>-><target status>"``, then the bare
    transition name, then ``default``.
    """
    labels: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_ACTION_LABELS))
    default: str = DEFAULT_FALLBACK_LABEL

    def __post_init__(self) -> None:
        if not self.default or not self.default.strip():
            raise InvalidRecordError("ActionLabels", "default label must be non-empty")
        for key, label in self.labels.items():
            if not key or not label:
                raise InvalidRecordError("ActionLabels", f"empty key or label: {key!r}")
        object.__setattr__(self, "labels", dict(self.labels))

    def label_for(self, transition: str, to_status: WorkflowStatus | str) -> str:
        target = to_status.value if isinstance(to_status, WorkflowStatus) else to_status
        return (
            self.labels.get(f"{transition}->{target}")
            or self.labels.get(transition)
            or self.default
        )


# ---------------------------------------------------------------------------
# History and entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowComment:
    """One immutable history record on a workflowable entity.

    Contract: frozen.  ``sequence`` is the 1-based position in the entity's
    history; ``from_status``/``to_status`` record the edge that was taken.
    """
    sequence: int
    transition: str
    action: str
    comment: str
    author_role: str
    timestamp: datetime
    from_status: WorkflowStatus
    to_status: WorkflowStatus

    def __post_init__(self) -> None:
        if not isinstance(self.sequence, int) or self.sequence < 1:
            raise InvalidRecordError("WorkflowComment", "sequence must be a positive integer")
        if not self.comment or not self.comment.strip():
            raise InvalidRecordError("WorkflowComment", "comment must not be blank")
        if not self.author_role:
            raise InvalidRecordError("WorkflowComment", "author_role is required")
        if self.timestamp.tzinfo is None:
            raise InvalidRecordError("WorkflowComment", "timestamp must be timezone-aware")
        object.__setattr__(self, "from_status", WorkflowStatus(self.from_status))
        object.__setattr__(self, "to_status", WorkflowStatus(self.to_status))


@dataclass(frozen=True)
class WorkflowableEntity:
    """A page, news item or event moving through the lifecycle.

    Contract: frozen.  Every change produces a new instance; the engine is the
    only producer of instances with a non-empty history.
    """
    id: str
    kind: EntityKind
    status: WorkflowStatus = WorkflowStatus.DRAFT
    history: tuple[WorkflowComment, ...] = ()
    title: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    published_at: datetime | None = None
    published_by_role: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidRecordError("WorkflowableEntity", "id must be a non-empty string")
        try:
            object.__setattr__(self, "kind", EntityKind(self.kind))
            object.__setattr__(self, "status", WorkflowStatus(self.status))
        except ValueError as exc:
            raise InvalidRecordError("WorkflowableEntity", str(exc)) from exc
        object.__setattr__(self, "history", tuple(self.history))

    @property
    def version(self) -> int:
        """Number of transitions applied so far."""
        return len(self.history)

    def with_status(self, status: WorkflowStatus, at: datetime) -> WorkflowableEntity:
        return replace(self, status=status, updated_at=at)
