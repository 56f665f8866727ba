"""
Module: workflow_kernel.models.content
Responsibility: ORM persistence for workflowable entities and their history.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions only.

Invariants enforced:
    - Entity ids are unique; status and kind are limited by check constraints.
    - History records are append-only: UNIQUE(entity_row_id, sequence) plus
      ORM listeners that reject any UPDATE or DELETE of a comment row.
    - ``version`` equals the number of stored history records.

Failure modes:
    - IntegrityError on duplicate entity id or duplicate sequence.
    - ImmutabilityViolationError on comment UPDATE/DELETE.

Audit relevance:
    The comment table is the persisted audit trail.  Rows are never edited
    in place; reading them ordered by ``sequence`` reproduces commit order.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_kernel.db.base import Base, UTCDateTime, UUIDString
from workflow_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from workflow_kernel.domain.workflow import WorkflowComment, WorkflowableEntity

_STATUS_CHECK = "IN ('draft', 'review', 'ready', 'published', 'archived')"


class WorkflowEntityModel(Base):
    """Persistent page, news item or event with its current status."""

    __tablename__ = "workflow_entities"

    __table_args__ = (
        CheckConstraint(f"status {_STATUS_CHECK}", name="ck_workflow_entities_status"),
        CheckConstraint(
            "kind IN ('page', 'news', 'event')",
            name="ck_workflow_entities_kind",
        ),
        Index("ix_workflow_entities_kind_status", "kind", "status"),
    )

    entity_id: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )
    published_by_role: Mapped[str | None] = mapped_column(String(200), nullable=True)

    comments: Mapped[list["WorkflowCommentModel"]] = relationship(
        "WorkflowCommentModel",
        back_populates="entity",
        order_by="WorkflowCommentModel.sequence",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<WorkflowEntity {self.entity_id} {self.kind} status={self.status}>"

    def to_dto(self) -> WorkflowableEntity:
        """Convert ORM model to frozen domain record, history included."""
        from workflow_kernel.domain.workflow import (
            EntityKind,
            WorkflowStatus,
            WorkflowableEntity as EntityDTO,
        )

        return EntityDTO(
            id=self.entity_id,
            kind=EntityKind(self.kind),
            status=WorkflowStatus(self.status),
            history=tuple(c.to_dto() for c in self.comments),
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
            published_at=self.published_at,
            published_by_role=self.published_by_role,
        )

    def apply_state(self, dto: WorkflowableEntity) -> None:
        """Copy the mutable columns (never history) from a domain record."""
        self.status = dto.status.value
        self.title = dto.title
        self.version = dto.version
        self.updated_at = dto.updated_at
        self.published_at = dto.published_at
        self.published_by_role = dto.published_by_role

    @classmethod
    def from_dto(cls, dto: WorkflowableEntity) -> WorkflowEntityModel:
        model = cls(
            entity_id=dto.id,
            kind=dto.kind.value,
            created_at=dto.created_at,
            comments=[],
        )
        model.apply_state(dto)
        return model


class WorkflowCommentModel(Base):
    """One history record. Append-only.

    Contract:
        Comments are immutable once created -- no UPDATE, no DELETE.
    """

    __tablename__ = "workflow_comments"

    __table_args__ = (
        UniqueConstraint("entity_row_id", "sequence", name="uq_workflow_comments_sequence"),
        CheckConstraint(f"from_status {_STATUS_CHECK}", name="ck_workflow_comments_from"),
        CheckConstraint(f"to_status {_STATUS_CHECK}", name="ck_workflow_comments_to"),
        CheckConstraint("sequence >= 1", name="ck_workflow_comments_sequence_positive"),
    )

    entity_row_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("workflow_entities.id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(nullable=False)
    transition: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    author_role: Mapped[str] = mapped_column(String(200), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)

    entity: Mapped["WorkflowEntityModel"] = relationship(
        "WorkflowEntityModel", back_populates="comments",
    )

    def __repr__(self) -> str:
        return f"<WorkflowComment #{self.sequence} {self.action}>"

    def to_dto(self) -> WorkflowComment:
        from workflow_kernel.domain.workflow import (
            WorkflowComment as CommentDTO,
            WorkflowStatus,
        )

        return CommentDTO(
            sequence=self.sequence,
            transition=self.transition,
            action=self.action,
            comment=self.comment,
            author_role=self.author_role,
            timestamp=self.timestamp,
            from_status=WorkflowStatus(self.from_status),
            to_status=WorkflowStatus(self.to_status),
        )

    @classmethod
    def from_dto(cls, dto: WorkflowComment) -> WorkflowCommentModel:
        return cls(
            sequence=dto.sequence,
            transition=dto.transition,
            action=dto.action,
            comment=dto.comment,
            author_role=dto.author_role,
            timestamp=dto.timestamp,
            from_status=dto.from_status.value,
            to_status=dto.to_status.value,
        )


# =============================================================================
# ORM-Level Immutability for History (Append-Only)
# =============================================================================


@event.listens_for(WorkflowCommentModel, "before_update")
def prevent_comment_update(mapper, connection, target):
    """Prevent updates to workflow history records."""
    raise ImmutabilityViolationError(
        entity_type="WorkflowComment",
        entity_id=f"{target.entity_row_id}#{target.sequence}",
        reason="Workflow history is append-only -- cannot modify",
    )


@event.listens_for(WorkflowCommentModel, "before_delete")
def prevent_comment_delete(mapper, connection, target):
    """Prevent deletion of workflow history records."""
    raise ImmutabilityViolationError(
        entity_type="WorkflowComment",
        entity_id=f"{target.entity_row_id}#{target.sequence}",
        reason="Workflow history is append-only -- cannot delete",
    )
