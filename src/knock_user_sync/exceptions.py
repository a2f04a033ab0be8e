"""Exceptions raised by the Knock user sync pipeline."""

from typing import Optional


class SyncError(RuntimeError):
    """Base class for every condition that halts a sync run."""


class ConfigurationError(SyncError, ValueError):
    """Raised when required configuration is missing or malformed."""


class MissingDependencyError(SyncError):
    """Raised when a required client library cannot be imported."""


class PayloadError(SyncError):
    """Raised when a source record cannot be turned into a payload entry."""


class SourceQueryError(SyncError):
    """Raised when the source store query fails (connectivity, auth, syntax)."""


class KnockAPIError(SyncError):
    """Raised when a Knock API call fails. Carries the HTTP status and body."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DirectoryFetchError(KnockAPIError):
    """Raised when the Knock user directory cannot be read or parsed."""


class BulkIdentifyError(KnockAPIError):
    """Raised when the Knock bulk identify call is rejected."""
