"""Core exception classes for the application.

Every failure the orchestrator reasons about belongs to one of four kinds:
transport (the remote side was unreachable or refused the call), decode (the
remote side answered with something we could not read), precondition (a local
check failed before any side effect) and store (the task database failed).
"""


class AppError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class TransportError(AppError):
    """Raised when a network, HTTP or subprocess call fails."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code


class DecodeError(AppError):
    """Raised when a response does not have the expected shape."""


class PreconditionError(AppError):
    """Raised when a local precondition fails before any side effect."""


class InvalidTransitionError(PreconditionError):
    """Raised when a task status change is not allowed."""


class StoreError(AppError):
    """Raised when the task store fails."""


class NotFoundError(StoreError):
    """Raised when a resource is not found."""


class RecordAlreadyExistsError(StoreError):
    """Raised when trying to create a record that already exists."""
