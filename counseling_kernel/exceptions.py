"""
Typed Exception Hierarchy for the Counseling Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (dashboards, API handlers, batch jobs) must be able to tell a
closed request from a too-late reschedule without parsing message text.
Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (request id, status, guard name, ...)

Example:
    try:
        engine.reschedule(request_id, new_date, new_time, mode)
    except SchedulingWindowError as e:
        show_reason(e.code, e.guard)      # "notice" or "new_slot"
    except TerminalStateError as e:
        show_reason(e.code, e.status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CounselingKernelError (base)
    |
    +-- ValidationError
    |
    +-- TransitionError
    |   +-- TerminalStateError
    |   +-- InvalidTransitionError
    |
    +-- SchedulingWindowError
    |
    +-- RepositoryError
    |   +-- NotFoundError
    |   +-- DuplicateRequestError
    |   +-- OptimisticLockError
    |
    +-- ProvisioningError
    +-- ProvisioningWarning      (carried on outcomes, never raised)
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|-------------------------------------
Validation    | VALIDATION_ERROR          | Malformed payload (before any read)
--------------|---------------------------|-------------------------------------
Transition    | TERMINAL_STATE            | Request is Disapproved/Cancelled
              | INVALID_TRANSITION        | Action not legal from current status
--------------|---------------------------|-------------------------------------
Scheduling    | SCHEDULING_WINDOW         | Notice or new-slot guard failed
--------------|---------------------------|-------------------------------------
Repository    | REQUEST_NOT_FOUND         | Request id does not exist
              | REQUEST_ALREADY_EXISTS    | create() with an existing id
              | OPTIMISTIC_LOCK_CONFLICT  | Stale write detected
--------------|---------------------------|-------------------------------------
Provisioning  | PROVISIONING_FAILED       | Link provider could not create a URL
              | PROVISIONING_WARNING      | Approval kept, link missing
--------------|---------------------------|-------------------------------------
Configuration | CONFIGURATION_ERROR       | YAML set failed validation

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Only provisioning failures are downgraded.  The engine turns a
   ProvisioningError into a ProvisioningWarning on the provisioning outcome;
   approval is never rolled back.

2. Everything else surfaces unmodified.  A failed transition leaves the
   record untouched, and the exception carries the reason.
"""


class CounselingKernelError(Exception):
    """
    Base exception for all counseling kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COUNSELING_KERNEL_ERROR"


# Validation


class ValidationError(CounselingKernelError):
    """Payload is malformed.  Raised before any repository read."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Transition-related exceptions


class TransitionError(CounselingKernelError):
    """Base exception for illegal lifecycle transitions."""

    code: str = "TRANSITION_ERROR"


class TerminalStateError(TransitionError):
    """Request is in a terminal status and accepts no further transitions."""

    code: str = "TERMINAL_STATE"

    def __init__(self, request_id: str, status: str, action: str):
        self.request_id = request_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} request {request_id}: status {status} is terminal"
        )


class InvalidTransitionError(TransitionError):
    """Action is not legal from the request's current (non-terminal) status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, request_id: str, status: str, action: str, reason: str = ""):
        self.request_id = request_id
        self.status = status
        self.action = action
        self.reason = reason
        message = f"Cannot {action} request {request_id} from status {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Scheduling


class SchedulingWindowError(CounselingKernelError):
    """
    A reschedule guard failed.

    ``guard`` is ``"notice"`` when the committed session starts too soon to
    be moved, ``"new_slot"`` when the proposed slot starts too soon.
    """

    code: str = "SCHEDULING_WINDOW"

    NOTICE = "notice"
    NEW_SLOT = "new_slot"

    def __init__(
        self,
        request_id: str,
        guard: str,
        target: str,
        now: str,
        minimum_minutes: int,
    ):
        self.request_id = request_id
        self.guard = guard
        self.target = target
        self.now = now
        self.minimum_minutes = minimum_minutes
        if guard == self.NOTICE:
            detail = (
                f"current session at {target} must be at least "
                f"{minimum_minutes} minutes away (now {now})"
            )
        else:
            detail = (
                f"new slot at {target} must be at least "
                f"{minimum_minutes} minutes away (now {now})"
            )
        super().__init__(f"Reschedule of {request_id} blocked by {guard} guard: {detail}")


# Repository-related exceptions


class RepositoryError(CounselingKernelError):
    """Base exception for request store failures."""

    code: str = "REPOSITORY_ERROR"


class NotFoundError(RepositoryError):
    """Request with given id was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request not found: {request_id}")


class DuplicateRequestError(RepositoryError):
    """Request with given id already exists."""

    code: str = "REQUEST_ALREADY_EXISTS"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request already exists: {request_id}")


class OptimisticLockError(RepositoryError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, request_id: str, expected_version: int, actual_version: int):
        self.request_id = request_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on request {request_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Provisioning


class ProvisioningError(CounselingKernelError):
    """The meeting-link provider failed to create a link."""

    code: str = "PROVISIONING_FAILED"

    def __init__(self, reason: str, request_id: str | None = None):
        self.reason = reason
        self.request_id = request_id
        super().__init__(f"Meeting link provisioning failed: {reason}")


class ProvisioningWarning(CounselingKernelError):
    """
    Non-fatal provisioning outcome.

    Never raised by the engine.  Attached to ``ProvisioningOutcome.warning``
    so the caller can show a non-blocking notice; the approval stands.
    """

    code: str = "PROVISIONING_WARNING"

    def __init__(self, request_id: str, reason: str):
        self.request_id = request_id
        self.reason = reason
        super().__init__(
            f"Request {request_id} approved without a meeting link: {reason}"
        )


# Configuration


class ConfigurationError(CounselingKernelError):
    """Configuration set failed validation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            f"Invalid counseling configuration: {len(self.errors)} error(s): "
            + "; ".join(self.errors)
        )
