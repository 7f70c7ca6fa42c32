"""
Custom exceptions for stickermock.

This module defines all custom exceptions used throughout the application.
Errors that can end a generation session carry an ErrorKind so the state
machine can turn them into a Failure result.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a failed generation session."""

    VALIDATION = "validation"
    FILE_READ = "file_read"
    TRANSPORT = "transport"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"


class StickermockError(Exception):
    """Base exception for all stickermock errors."""

    kind: ErrorKind | None = None


class SessionError(StickermockError):
    """Base for errors that end a generation session; subclasses set kind."""

    kind: ErrorKind


class ValidationError(SessionError):
    """Raised when input validation fails (before any I/O)."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class FileReadError(SessionError):
    """Raised when the uploaded image cannot be read or decoded."""

    kind = ErrorKind.FILE_READ

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class TransportError(SessionError):
    """Raised when a request could not be sent at all (DNS, connection, timeout)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize transport error.

        Args:
            message: Error message
            original_error: The underlying exception that caused this error
        """
        self.original_error = original_error
        super().__init__(message)


class NetworkError(SessionError):
    """Raised when the service answers with a non-success HTTP status."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, status_code: int = 0, response: str = "") -> None:
        """
        Initialize network error.

        Args:
            message: Provider-supplied error message, or a generic status message
            status_code: HTTP status code
            response: Raw response body (if available)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class ConfigurationError(StickermockError):
    """Raised when there is a configuration problem."""

    pass


class StorageError(StickermockError):
    """Raised by a storage backend when a read or write fails."""

    pass
