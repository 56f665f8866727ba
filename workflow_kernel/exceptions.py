"""
Typed Exception Hierarchy for the Workflow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection the kernel produces is an expected, recoverable outcome that
the admin UI turns into a user-facing message. Callers must be able to tell
"this role may not validate" apart from "this role does not exist" without
parsing message strings:

Example - WRONG way to handle errors:
    try:
        engine.apply_transition(entity_id, "validate", role, comment)
    except Exception as e:
        if "not authorized" in str(e):  # FRAGILE - message might change
            show_forbidden()

Example - RIGHT way (what this module enables):
    try:
        engine.apply_transition(entity_id, "validate", role, comment)
    except UnauthorizedTransitionError as e:   # Typed catch
        show_forbidden(e.transition, e.role_name)  # Structured data
    except MissingCommentError:
        ask_for_comment()

Rules:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from WorkflowKernelError:

    WorkflowKernelError (base)
    |
    +-- NotFoundError
    |   +-- RoleNotFoundError
    |   +-- TransitionNotFoundError
    |   +-- EntityNotFoundError
    |
    +-- AuthorizationError
    |   +-- ProtectedRoleError
    |   +-- EmptyAuthorizationError
    |   +-- UnauthorizedTransitionError
    |   +-- AdministrationNotPermittedError
    |
    +-- WorkflowError
    |   +-- IllegalTransitionError
    |   +-- MissingCommentError
    |   +-- EntityAlreadyExistsError
    |
    +-- ValidationError
    |   +-- InvalidPermissionTagError
    |   +-- InvalidRecordError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Not found       | ROLE_NOT_FOUND                | Role name not in the catalog
                | TRANSITION_NOT_FOUND          | Transition unknown to the matrix
                | ENTITY_NOT_FOUND              | Entity id not in the store
----------------|-------------------------------|---------------------------------------
Authorization   | PROTECTED_ROLE                | Editing or removing the protected role
                | EMPTY_AUTHORIZATION           | Edit would leave zero authorized roles
                | UNAUTHORIZED_TRANSITION       | Role may not perform the transition
                | ADMINISTRATION_NOT_PERMITTED  | Acting role may not edit roles/matrix
----------------|-------------------------------|---------------------------------------
Workflow        | ILLEGAL_TRANSITION            | Transition not legal from status
                | MISSING_COMMENT               | Blank or whitespace-only comment
                | ENTITY_ALREADY_EXISTS         | Duplicate entity id on creation
----------------|-------------------------------|---------------------------------------
Validation      | INVALID_PERMISSION_TAG        | Tag not in module.action form
                | INVALID_RECORD                | Record constructor rejected its fields
----------------|-------------------------------|---------------------------------------
Audit           | AUDIT_CHAIN_BROKEN            | History sequence/status chain broken
----------------|-------------------------------|---------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Rewriting an appended history record

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CATCH SPECIFIC EXCEPTIONS, fall back to the category:

    try:
        matrix.revoke("publish", role_name)
    except ProtectedRoleError:
        toast("The system administrator cannot be removed")
    except AuthorizationError as e:
        toast(e.code)

2. NOTHING HERE IS FATAL. Storage faults (connection loss, timeouts) are
   NOT part of this hierarchy; they propagate unchanged from the store.

===============================================================================
"""


class WorkflowKernelError(Exception):
    """
    Base exception for all workflow kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "WORKFLOW_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(WorkflowKernelError):
    """Base exception for unknown role, transition or entity references."""

    code: str = "NOT_FOUND"


class RoleNotFoundError(NotFoundError):
    """Role name is not in the catalog."""

    code: str = "ROLE_NOT_FOUND"

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role not found: {role_name}")


class TransitionNotFoundError(NotFoundError):
    """Transition name is not known to the authorization matrix."""

    code: str = "TRANSITION_NOT_FOUND"

    def __init__(self, transition: str):
        self.transition = transition
        super().__init__(f"Transition not found: {transition}")


class EntityNotFoundError(NotFoundError):
    """Workflowable entity does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Entity not found: {entity_id}")


# Authorization exceptions


class AuthorizationError(WorkflowKernelError):
    """Base exception for authorization and protected-role errors."""

    code: str = "AUTHORIZATION_ERROR"


class ProtectedRoleError(AuthorizationError):
    """Attempted to alter the protected role or remove it from a transition."""

    code: str = "PROTECTED_ROLE"

    def __init__(self, role_name: str, operation: str):
        self.role_name = role_name
        self.operation = operation
        super().__init__(
            f"Role {role_name!r} is protected: {operation} is not allowed"
        )


class EmptyAuthorizationError(AuthorizationError):
    """Edit would leave a transition with no authorized role."""

    code: str = "EMPTY_AUTHORIZATION"

    def __init__(self, transition: str, role_name: str):
        self.transition = transition
        self.role_name = role_name
        super().__init__(
            f"Removing {role_name!r} would leave transition "
            f"{transition!r} with no authorized role"
        )


class UnauthorizedTransitionError(AuthorizationError):
    """Acting role is not authorized for the requested transition."""

    code: str = "UNAUTHORIZED_TRANSITION"

    def __init__(self, transition: str, role_name: str, entity_id: str):
        self.transition = transition
        self.role_name = role_name
        self.entity_id = entity_id
        super().__init__(
            f"Role {role_name!r} may not perform {transition!r} "
            f"on entity {entity_id}"
        )


class AdministrationNotPermittedError(AuthorizationError):
    """Acting role may not edit role permissions or the authorization matrix."""

    code: str = "ADMINISTRATION_NOT_PERMITTED"

    def __init__(self, role_name: str, operation: str):
        self.role_name = role_name
        self.operation = operation
        super().__init__(
            f"Role {role_name!r} is not permitted to {operation}"
        )


# Workflow exceptions


class WorkflowError(WorkflowKernelError):
    """Base exception for lifecycle errors on a workflowable entity."""

    code: str = "WORKFLOW_ERROR"


class IllegalTransitionError(WorkflowError):
    """Transition is not legal from the entity's current status."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, entity_id: str, transition: str, current_status: str):
        self.entity_id = entity_id
        self.transition = transition
        self.current_status = current_status
        super().__init__(
            f"Transition {transition!r} is not legal from status "
            f"{current_status!r} (entity {entity_id})"
        )


class MissingCommentError(WorkflowError):
    """Transition requested without a non-blank comment."""

    code: str = "MISSING_COMMENT"

    def __init__(self, entity_id: str, transition: str):
        self.entity_id = entity_id
        self.transition = transition
        super().__init__(
            f"A comment is required to perform {transition!r} "
            f"on entity {entity_id}"
        )


class EntityAlreadyExistsError(WorkflowError):
    """Entity with the given id already exists."""

    code: str = "ENTITY_ALREADY_EXISTS"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Entity already exists: {entity_id}")


# Validation exceptions


class ValidationError(WorkflowKernelError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"


class InvalidPermissionTagError(ValidationError):
    """Permission tag does not follow the module.action convention."""

    code: str = "INVALID_PERMISSION_TAG"

    def __init__(self, tag: str, reason: str):
        self.tag = tag
        self.reason = reason
        super().__init__(f"Invalid permission tag {tag!r}: {reason}")


class InvalidRecordError(ValidationError):
    """A domain record constructor rejected its fields."""

    code: str = "INVALID_RECORD"

    def __init__(self, record_type: str, reason: str):
        self.record_type = record_type
        self.reason = reason
        super().__init__(f"Invalid {record_type}: {reason}")


# Audit exceptions


class AuditError(WorkflowKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """An entity's history is not a contiguous, status-linked chain."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, entity_id: str, reason: str):
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Audit chain broken for entity {entity_id}: {reason}")


# Immutability exceptions


class ImmutabilityError(WorkflowKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify, delete or reorder an append-only record.

    Workflow comments are immutable once appended to an entity's history.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
