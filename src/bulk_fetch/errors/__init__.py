"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- TransferError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from bulk_fetch.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    TransferError,
    TransientError,
    PermanentError,
    # Transfer errors
    ConnectError,
    AuthError,
    NotFoundError,
    LocalIOError,
    DecodeError,
    ConfigurationError,
    BinaryNotFoundError,
    HTTPStatusError,
    TransferCancelledError,
    QueueClosedError,
    # Classification utilities
    classify_http_status,
    classify_exception,
    wrap_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "TransferError",
    "TransientError",
    "PermanentError",
    # Transfer errors
    "ConnectError",
    "AuthError",
    "NotFoundError",
    "LocalIOError",
    "DecodeError",
    "ConfigurationError",
    "BinaryNotFoundError",
    "HTTPStatusError",
    "TransferCancelledError",
    "QueueClosedError",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
    "wrap_exception",
]
