"""Custom exception hierarchy for Tempdrop."""

from __future__ import annotations


class TempdropError(Exception):
    """Base exception for all Tempdrop-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(TempdropError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(TempdropError):
    """Base class for request validation errors."""
    pass


class MissingUploadError(ValidationError):
    """Raised when an upload request carries no file field."""
    pass


class ObjectNotFoundError(TempdropError):
    """Raised when a stored object is absent or has expired."""
    pass


class StorageError(TempdropError):
    """Raised when storage operations fail."""
    pass


class InvalidKeyError(StorageError):
    """Raised when a storage key cannot be mapped to a safe location."""
    pass
