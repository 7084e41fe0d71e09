"""Error taxonomy for the core pipeline."""

from __future__ import annotations


class FilescopeError(Exception):
    """Base class for all domain level exceptions."""


class UnauthorizedError(FilescopeError):
    """Raised when an origin is not allowed to contribute files."""


class ValidationError(FilescopeError):
    """Raised when user input fails validation (bad query, page out of range)."""


class MalformedTokenError(ValidationError):
    """Raised when a callback token cannot be encoded or decoded."""


class NotFoundError(FilescopeError):
    """Raised when a stored record cannot be located."""


class TransientIOError(FilescopeError):
    """Raised when the store or the gateway times out or drops the connection."""


__all__ = [
    "FilescopeError",
    "UnauthorizedError",
    "ValidationError",
    "MalformedTokenError",
    "NotFoundError",
    "TransientIOError",
]
