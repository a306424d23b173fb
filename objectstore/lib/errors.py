"""Structured exception hierarchy for object storage.

Every engine reports failures through these types so callers can map them
to distinct outward statuses without string matching:

- StorageError: I/O, permission or lock failures (base class)
- ObjectNotFoundError: read of a key that does not exist
- BadDataError: caller-input errors, always detected before anything is
  written or removed
- ConfigurationError: invalid storage configuration
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "StorageError",
    "ObjectNotFoundError",
    "BadDataError",
    "ConfigurationError",
]


class StorageError(Exception):
    """Base exception for all storage errors.

    Carries the offending key, multipart token and part number (when known)
    so they can be logged in structured form.
    """

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        token: Optional[str] = None,
        part: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.key = key
        self.token = token
        self.part = part
        self.cause = cause
        self.details = dict(details or {})

        if cause is not None:
            self.details.setdefault("cause", str(cause))
            self.details.setdefault("cause_type", type(cause).__name__)

        parts = [message]
        if self.details:
            parts.append("\nDetails:")
            parts.extend(f"  {k}: {v}" for k, v in self.details.items())

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "key": self.key,
            "token": self.token,
            "part": self.part,
            "details": self.details,
        }


class ObjectNotFoundError(StorageError):
    """Requested object does not exist."""


class BadDataError(StorageError):
    """Invalid input supplied by the caller.

    Raised for missing or already consumed data, unknown multipart tokens,
    unsorted parts, parts that were never uploaded and hash mismatches.
    """


class ConfigurationError(StorageError):
    """Error in storage configuration.

    Raised when a configuration file is missing, malformed, or names an
    unknown backend.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", None) or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)
