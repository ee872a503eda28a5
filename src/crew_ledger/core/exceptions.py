class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when an employee or entry key is unknown."""


class AuditWriteError(DomainError):
    """Raised when the change history cannot be written.

    The triggering mutation is not committed when this is raised.
    """


class TransportError(DomainError):
    """Raised when the remote store cannot be reached or refuses a call."""

    def __init__(self, message: str, *, retryable: bool = True, status_code: int | None = None):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class SyncCancelled(DomainError):
    """Raised inside a sync cycle when the caller asked it to stop."""
