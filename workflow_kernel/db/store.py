"""
Module: workflow_kernel.db.store
Responsibility: SQLAlchemy implementation of the ``WorkflowStore`` port.
Architecture position: Kernel > DB.  Imports models/ and domain/; services
    receive an instance through the composition root and never touch
    sessions themselves.

Invariants enforced:
    - One session_scope() transaction per write, so every single-role,
      single-transition and single-entity write is atomic.
    - save_entity only inserts history rows beyond those already stored, and
      refuses any save whose history disagrees with the stored prefix.
    - Entity rows are loaded FOR UPDATE on PostgreSQL while saving.

Failure modes:
    - EntityAlreadyExistsError / EntityNotFoundError on entity writes.
    - ImmutabilityViolationError when a save would rewrite stored history.
    - SQLAlchemyError subclasses propagate unchanged.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from workflow_kernel.db.engine import session_scope
from workflow_kernel.domain.roles import Role, TransitionAuthorization
from workflow_kernel.domain.workflow import WorkflowableEntity
from workflow_kernel.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    ImmutabilityViolationError,
)
from workflow_kernel.logging_config import get_logger
from workflow_kernel.models.authorization import TransitionModel
from workflow_kernel.models.content import WorkflowCommentModel, WorkflowEntityModel
from workflow_kernel.models.role import RoleModel

logger = get_logger("db.store")


class SqlAlchemyWorkflowStore:
    """Relational store for roles, the authorization matrix and entities."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # Roles

    def load_roles(self) -> tuple[Role, ...]:
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(RoleModel).order_by(RoleModel.position, RoleModel.name)
            ).all()
            return tuple(r.to_dto() for r in rows)

    def save_role(self, role: Role) -> None:
        with session_scope(self._session_factory) as session:
            model = session.scalars(
                select(RoleModel).where(RoleModel.name == role.name)
            ).one_or_none()
            if model is None:
                position = session.scalar(select(func.count()).select_from(RoleModel)) or 0
                session.add(RoleModel.from_dto(role, position=position))
            else:
                model.apply_dto(role)

    # Authorizations

    def load_authorizations(self) -> tuple[TransitionAuthorization, ...]:
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(TransitionModel).order_by(TransitionModel.position, TransitionModel.name)
            ).all()
            return tuple(r.to_dto() for r in rows)

    def save_authorization(self, authorization: TransitionAuthorization) -> None:
        with session_scope(self._session_factory) as session:
            model = session.scalars(
                select(TransitionModel).where(TransitionModel.name == authorization.transition)
            ).one_or_none()
            if model is None:
                position = session.scalar(
                    select(func.count()).select_from(TransitionModel)
                ) or 0
                model = TransitionModel(name=authorization.transition, position=position, roles=[])
                session.add(model)
            else:
                model.roles.clear()
                session.flush()
            model.append_roles(authorization.roles)

    def delete_authorization(self, transition: str) -> None:
        with session_scope(self._session_factory) as session:
            model = session.scalars(
                select(TransitionModel).where(TransitionModel.name == transition)
            ).one_or_none()
            if model is not None:
                session.delete(model)

    # Entities

    def load_entity(self, entity_id: str) -> WorkflowableEntity | None:
        with session_scope(self._session_factory) as session:
            model = session.scalars(
                select(WorkflowEntityModel).where(WorkflowEntityModel.entity_id == entity_id)
            ).one_or_none()
            return model.to_dto() if model is not None else None

    def insert_entity(self, entity: WorkflowableEntity) -> None:
        with session_scope(self._session_factory) as session:
            exists = session.scalar(
                select(func.count())
                .select_from(WorkflowEntityModel)
                .where(WorkflowEntityModel.entity_id == entity.id)
            )
            if exists:
                raise EntityAlreadyExistsError(entity.id)
            model = WorkflowEntityModel.from_dto(entity)
            for record in entity.history:
                model.comments.append(WorkflowCommentModel.from_dto(record))
            session.add(model)

    def save_entity(self, entity: WorkflowableEntity) -> None:
        with session_scope(self._session_factory) as session:
            model = session.scalars(
                select(WorkflowEntityModel)
                .where(WorkflowEntityModel.entity_id == entity.id)
                .with_for_update()
            ).one_or_none()
            if model is None:
                raise EntityNotFoundError(entity.id)

            stored = tuple(c.to_dto() for c in model.comments)
            if entity.history[: len(stored)] != stored:
                raise ImmutabilityViolationError(
                    "WorkflowableEntity", entity.id, "stored history may only be extended"
                )

            for record in entity.history[len(stored):]:
                model.comments.append(WorkflowCommentModel.from_dto(record))
            model.apply_state(entity)

        logger.debug(
            "entity_saved",
            extra={
                "workflow_entity": entity.id,
                "status": entity.status.value,
                "history_length": len(entity.history),
            },
        )
