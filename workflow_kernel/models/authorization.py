"""
Module: workflow_kernel.models.authorization
Responsibility: ORM persistence for the transition authorization matrix.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Transition names are unique.
    - A role appears at most once per transition.
    - ``position`` columns preserve matrix order and per-transition role order.

Failure modes:
    - IntegrityError on duplicate transition or duplicate role membership.

Audit relevance:
    Rows are rewritten as a whole per transition inside one transaction, so
    a reader never sees a half-applied role set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.roles import TransitionAuthorization


class TransitionModel(Base):
    """A transition known to the authorization matrix."""

    __tablename__ = "workflow_transitions"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    roles: Mapped[list["TransitionRoleModel"]] = relationship(
        "TransitionRoleModel",
        back_populates="transition",
        cascade="all, delete-orphan",
        order_by="TransitionRoleModel.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Transition {self.name!r} roles={len(self.roles)}>"

    def to_dto(self) -> TransitionAuthorization:
        from workflow_kernel.domain.roles import (
            TransitionAuthorization as TransitionAuthorizationDTO,
        )

        return TransitionAuthorizationDTO(
            transition=self.name,
            roles=tuple(r.role_name for r in self.roles),
        )

    def append_roles(self, role_names: tuple[str, ...]) -> None:
        """Append membership rows after any existing ones.

        Callers replacing a set must clear ``roles`` and flush first, since a
        flush inserts new rows before deleting orphaned ones.
        """
        offset = len(self.roles)
        for index, role_name in enumerate(role_names, start=offset):
            self.roles.append(TransitionRoleModel(role_name=role_name, position=index))


class TransitionRoleModel(Base):
    """Membership of one role in one transition's authorized set."""

    __tablename__ = "workflow_transition_roles"

    __table_args__ = (
        UniqueConstraint(
            "transition_id", "role_name",
            name="uq_workflow_transition_roles_member",
        ),
    )

    transition_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("workflow_transitions.id", ondelete="CASCADE"),
        nullable=False,
    )
    role_name: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    transition: Mapped["TransitionModel"] = relationship(
        "TransitionModel", back_populates="roles",
    )
