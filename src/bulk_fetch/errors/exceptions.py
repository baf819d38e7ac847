"""
Exception types and error classification for bulk_fetch.

Provides:
- ErrorCategory enum for reporting decisions
- Typed exception hierarchy for transfer errors
- Error classification utilities
"""

import ftplib
import socket
from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """
    Classification of error types.

    Categories:
        TRANSIENT: Temporary failures that may succeed later
                   (e.g., connection refused, dial timeout, dropped data channel)
        AUTH: Login rejected by the server
        PERMANENT: Failures that won't succeed on a rerun without changes
                   (e.g., missing remote file, unwritable destination, corrupt archive)
        CANCELLED: Work abandoned because the batch was shut down
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class TransferError(Exception):
    """
    Base exception for all transfer errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Network/Connection Errors (Transient)
# =============================================================================


class TransientError(TransferError):
    """Base class for transient errors."""

    category = ErrorCategory.TRANSIENT


class ConnectError(TransientError):
    """Cannot reach host:port within the timeout, or the connection dropped."""

    pass


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(TransferError):
    """Server rejected the credentials."""

    category = ErrorCategory.AUTH


# =============================================================================
# Permanent Errors
# =============================================================================


class PermanentError(TransferError):
    """Base class for permanent errors."""

    category = ErrorCategory.PERMANENT


class NotFoundError(PermanentError):
    """Remote directory or file is missing."""

    pass


class LocalIOError(PermanentError):
    """Cannot create or write a local file or directory."""

    pass


class DecodeError(PermanentError):
    """Compressed input is malformed."""

    pass


class ConfigurationError(PermanentError):
    """Invalid configuration."""

    pass


class BinaryNotFoundError(PermanentError):
    """Required executable is not on PATH."""

    def __init__(self, binary_name: str):
        super().__init__(
            f"Can not locate binary file '{binary_name}' on your system; "
            "check if it's installed and is added to your PATH variable",
            context={"binary": binary_name},
        )
        self.binary_name = binary_name


class HTTPStatusError(TransferError):
    """HTTP fetch returned a non-success status."""

    def __init__(
        self,
        status_code: int,
        url: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"HTTP {status_code} for {url}",
            cause=cause,
            context={"http_status": status_code},
        )
        self.status_code = status_code
        self.url = url
        self.category = classify_http_status(status_code)


# =============================================================================
# Cancellation
# =============================================================================


class TransferCancelledError(TransferError):
    """Item abandoned because the batch was cancelled."""

    category = ErrorCategory.CANCELLED


class QueueClosedError(RuntimeError):
    """Work queue was used after it was closed."""

    pass


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorCategory
    """
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code in (401, 407):
        return ErrorCategory.AUTH

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def _ftp_reply_code(exc: BaseException) -> str:
    """First three characters of an ftplib reply error ('550', '530', ...)."""
    return str(exc)[:3]


def classify_exception(exc: BaseException) -> ErrorCategory:
    """
    Classify an exception into error category.

    Args:
        exc: Exception to classify

    Returns:
        Appropriate ErrorCategory
    """
    # Already classified
    if isinstance(exc, TransferError):
        return exc.category

    if isinstance(exc, ftplib.error_perm):
        code = _ftp_reply_code(exc)
        if code in ("530", "532"):
            return ErrorCategory.AUTH
        return ErrorCategory.PERMANENT

    if isinstance(exc, ftplib.error_temp):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, (socket.timeout, ConnectionError, EOFError)):
        return ErrorCategory.TRANSIENT

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    connection_markers = (
        "connection refused",
        "connection reset",
        "connection aborted",
        "no route to host",
        "network unreachable",
        "name resolution",
        "name or service not known",
        "broken pipe",
    )
    if any(m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timed out" in exc_str:
        return ErrorCategory.TRANSIENT

    # Local filesystem errors
    if isinstance(exc, OSError):
        return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: BaseException,
    default_class: type = TransferError,
    context: Optional[dict] = None,
) -> TransferError:
    """
    Wrap a generic exception in the appropriate TransferError subclass.

    Args:
        exc: Exception to wrap
        default_class: Class to use if can't classify
        context: Additional context to include

    Returns:
        Appropriate TransferError subclass instance
    """
    if isinstance(exc, TransferError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)

    if category == ErrorCategory.AUTH:
        return AuthError(str(exc), cause=exc, context=context)

    if category == ErrorCategory.TRANSIENT:
        return ConnectError(str(exc), cause=exc, context=context)

    if category == ErrorCategory.PERMANENT:
        if isinstance(exc, ftplib.error_perm):
            return NotFoundError(str(exc), cause=exc, context=context)
        if isinstance(exc, OSError):
            return LocalIOError(str(exc), cause=exc, context=context)
        return PermanentError(str(exc), cause=exc, context=context)

    return default_class(str(exc), cause=exc, context=context)
