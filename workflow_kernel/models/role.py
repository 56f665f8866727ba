"""
Module: workflow_kernel.models.role
Responsibility: ORM persistence for role definitions and their permission tags.

Architecture position: Kernel > Models.  May import from db/base.py only
    (domain DTOs are imported lazily inside to_dto/from_dto).

Invariants enforced:
    - Role names are unique.
    - A tag appears at most once per role (UNIQUE(role_id, tag)).
    - ``position`` preserves catalog order across reloads.

Failure modes:
    - IntegrityError on duplicate role name or duplicate tag.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.roles import Role


class RoleModel(Base):
    """Persistent role definition."""

    __tablename__ = "workflow_roles"

    __table_args__ = (
        CheckConstraint(
            "level IN ('system', 'admin', 'module', 'user')",
            name="ck_workflow_roles_valid_level",
        ),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    module: Mapped[str] = mapped_column(String(100), default="general", nullable=False)
    level: Mapped[str] = mapped_column(String(20), default="user", nullable=False)
    can_manage_transitions: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    permissions: Mapped[list["RolePermissionModel"]] = relationship(
        "RolePermissionModel",
        back_populates="role",
        cascade="all, delete-orphan",
        order_by="RolePermissionModel.tag",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Role {self.name!r} level={self.level}>"

    def to_dto(self) -> Role:
        """Convert ORM model to frozen domain record."""
        from workflow_kernel.domain.roles import Role as RoleDTO, RoleLevel

        return RoleDTO(
            name=self.name,
            description=self.description,
            permissions=frozenset(p.tag for p in self.permissions),
            can_manage_transitions=self.can_manage_transitions,
            module=self.module,
            level=RoleLevel(self.level),
        )

    def apply_dto(self, dto: Role) -> None:
        """Overwrite columns and permission rows from a domain record."""
        self.description = dto.description
        self.module = dto.module
        self.level = dto.level.value
        self.can_manage_transitions = dto.can_manage_transitions

        wanted = set(dto.permissions)
        for row in list(self.permissions):
            if row.tag not in wanted:
                self.permissions.remove(row)
        present = {row.tag for row in self.permissions}
        for tag in sorted(wanted - present):
            self.permissions.append(RolePermissionModel(tag=tag))

    @classmethod
    def from_dto(cls, dto: Role, position: int) -> RoleModel:
        """Create ORM model from a domain record."""
        model = cls(name=dto.name, position=position, permissions=[])
        model.apply_dto(dto)
        return model


class RolePermissionModel(Base):
    """One permission tag held by a role."""

    __tablename__ = "workflow_role_permissions"

    __table_args__ = (
        UniqueConstraint("role_id", "tag", name="uq_workflow_role_permissions_tag"),
    )

    role_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("workflow_roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    tag: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped["RoleModel"] = relationship("RoleModel", back_populates="permissions")

    def __repr__(self) -> str:
        return f"<RolePermission {self.tag!r}>"
