"""
Roles -- Role definitions and transition authorizations.

Responsibility:
    Closed, validated record types for the role registry (``Role``) and
    for one row of the authorization matrix (``TransitionAuthorization``),
    plus the advisory permission-tag format check used at editor boundaries.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Role names are non-empty and stripped.
    - ``Role.permissions`` is a frozenset: duplicates are never observable.
    - ``TransitionAuthorization.roles`` is ordered and duplicate-free.

Failure modes:
    - InvalidRecordError on malformed record fields.
    - InvalidPermissionTagError from ``validate_permission_tag``.

Audit relevance:
    Roles and authorizations are snapshotted as whole immutable values, so
    a logged before/after pair fully describes every administrative edit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable

from workflow_kernel.exceptions import InvalidPermissionTagError, InvalidRecordError

DEFAULT_PROTECTED_ROLE = "Administrateur Système"

# One or more dot-separated segments after a leading module segment.
# Segments are non-empty and whitespace-free; "*" is an accepted wildcard.
_PERMISSION_TAG_RE = re.compile(r"^[^\s.]+(\.[^\s.]+)+$")


class RoleLevel(str, Enum):
    """Informational rank label. Not enforced structurally."""

    SYSTEM = "system"
    ADMIN = "admin"
    MODULE = "module"
    USER = "user"


def validate_permission_tag(tag: str) -> str:
    """Check a permission tag against the ``module.action`` convention.

    Returns the tag unchanged when it conforms.

    Raises:
        InvalidPermissionTagError: if the tag is empty, contains whitespace,
            or has fewer than two dot-separated segments.
    """
    if not isinstance(tag, str) or not tag:
        raise InvalidPermissionTagError(str(tag), "tag must be a non-empty string")
    if any(ch.isspace() for ch in tag):
        raise InvalidPermissionTagError(tag, "tag must not contain whitespace")
    if not _PERMISSION_TAG_RE.match(tag):
        raise InvalidPermissionTagError(tag, "expected module.action form")
    return tag


def is_conforming_permission_tag(tag: str) -> bool:
    """Non-raising form of ``validate_permission_tag``."""
    try:
        validate_permission_tag(tag)
    except InvalidPermissionTagError:
        return False
    return True


@dataclass(frozen=True)
class Role:
    """
    A role definition in the catalog.

    Contract:
        ``permissions`` accepts any iterable of strings and is normalized to a
        frozenset. Tags are opaque; the kernel stores and returns them but
        never interprets them.

    Guarantees:
        - Immutable and hashable.
        - ``name`` is non-empty with surrounding whitespace removed.
    """

    name: str
    description: str = ""
    permissions: frozenset[str] = field(default_factory=frozenset)
    can_manage_transitions: bool = False
    module: str = "general"
    level: RoleLevel = RoleLevel.USER

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidRecordError("Role", "name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())

        if isinstance(self.permissions, str):
            raise InvalidRecordError("Role", "permissions must be a collection of tags")
        permissions = frozenset(self.permissions)
        for tag in permissions:
            if not isinstance(tag, str) or not tag:
                raise InvalidRecordError(
                    "Role", f"permission tags must be non-empty strings, got {tag!r}"
                )
        object.__setattr__(self, "permissions", permissions)

        if not isinstance(self.can_manage_transitions, bool):
            raise InvalidRecordError("Role", "can_manage_transitions must be a bool")

        try:
            object.__setattr__(self, "level", RoleLevel(self.level))
        except ValueError as exc:
            raise InvalidRecordError("Role", f"unknown level {self.level!r}") from exc

    def has_permission(self, tag: str) -> bool:
        return tag in self.permissions

    def with_permissions(self, permissions: Iterable[str]) -> Role:
        """Return a copy with the permission set replaced."""
        return replace(self, permissions=frozenset(permissions))

    def with_can_manage_transitions(self, flag: bool) -> Role:
        return replace(self, can_manage_transitions=flag)


@dataclass(frozen=True)
class TransitionAuthorization:
    """
    One row of the authorization matrix: a transition and its roles.

    Contract:
        ``roles`` keeps first-seen order and drops repeated names.

    Non-goals:
        Does not itself check for the protected role; that invariant belongs
        to the matrix, which is the sole writer.
    """

    transition: str
    roles: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.transition, str) or not self.transition.strip():
            raise InvalidRecordError(
                "TransitionAuthorization", "transition must be a non-empty string"
            )
        if isinstance(self.roles, str):
            raise InvalidRecordError(
                "TransitionAuthorization", "roles must be a collection of role names"
            )
        ordered: list[str] = []
        for role_name in self.roles:
            if not isinstance(role_name, str) or not role_name.strip():
                raise InvalidRecordError(
                    "TransitionAuthorization",
                    f"role names must be non-empty strings, got {role_name!r}",
                )
            role_name = role_name.strip()
            if role_name not in ordered:
                ordered.append(role_name)
        object.__setattr__(self, "transition", self.transition.strip())
        object.__setattr__(self, "roles", tuple(ordered))

    @property
    def role_set(self) -> frozenset[str]:
        return frozenset(self.roles)

    def includes(self, role_name: str) -> bool:
        return role_name in self.roles

    def with_role(self, role_name: str) -> TransitionAuthorization:
        if role_name in self.roles:
            return self
        return TransitionAuthorization(self.transition, self.roles + (role_name,))

    def without_role(self, role_name: str) -> TransitionAuthorization:
        return TransitionAuthorization(
            self.transition, tuple(r for r in self.roles if r != role_name)
        )
