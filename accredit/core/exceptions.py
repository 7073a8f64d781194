"""
Workflow exceptions.

Every error carries a stable ``code`` so API clients can branch on it without
parsing the message. The HTTP status each one maps to lives in ``main.py``.
"""
from typing import Optional


class WorkflowError(Exception):
    """Base class for all workflow errors."""

    code: str = "WORKFLOW_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)


class InvalidInputError(WorkflowError):
    """Missing or malformed input, rejected before anything is written."""

    code = "INVALID_INPUT"


class NotFoundError(WorkflowError):
    """The referenced record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ConflictError(WorkflowError):
    """A uniqueness rule would be broken by the requested change."""

    code = "CONFLICT"


class StateViolationError(WorkflowError):
    """The record is not in a state that allows the requested transition."""

    code = "INVALID_STATE"

    def __init__(self, message: str, current_state: Optional[str] = None):
        self.current_state = current_state
        super().__init__(message)


class CooldownError(WorkflowError):
    """A rate-limited action was retried too soon."""

    code = "COOLDOWN"

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        unit = "second" if retry_after == 1 else "seconds"
        super().__init__(
            f"Please wait {retry_after} {unit} before requesting a new code."
        )


class NoActiveTermError(WorkflowError):
    """No academic term is currently active."""

    code = "NO_ACTIVE_TERM"

    def __init__(self):
        super().__init__(
            "No active semester is currently set. Please contact the OSAS office."
        )


class StorageError(WorkflowError):
    """A file could not be written or removed."""

    code = "STORAGE_ERROR"
