"""
Custom domain exceptions for the moderation analytics core.

These exceptions are raised by the service layer. Pure validators return a
``ValidationResult``; workflow entry points turn a failed result into one of
the typed validation exceptions below before touching storage.

Every exception carries a correlation ID so a failure can be matched to the
log lines of the operation that raised it.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use operation correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class ValidationException(DomainException):
    """
    Raised when input validation fails.

    Attributes:
        errors: Individual validation messages.
    """

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        correlation_id: str | None = None,
    ):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: {', '.join(self.errors)}"
        super().__init__(message, correlation_id)


class StorageException(DomainException):
    """Raised when the storage layer fails during a read or a required write."""

    pass


# Activity feed


class ActivityValidationException(ValidationException):
    """Invalid activity input."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid activity input", errors)


# Audit log


class AuditLogValidationException(ValidationException):
    """Invalid audit log input."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid audit log input", errors)


class AuditLogNotFoundException(NotFoundException):
    """Audit log entry not found."""

    def __init__(self, log_id: str):
        super().__init__(f"Audit log entry {log_id} not found")
        self.log_id = log_id


# Data management


class OrphanFilterValidationException(ValidationException):
    """Invalid orphan detection filters."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid filters", errors)


class CleanupValidationException(ValidationException):
    """Invalid orphan cleanup request."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid cleanup request", errors)
