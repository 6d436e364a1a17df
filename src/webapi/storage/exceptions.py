"""Storage-specific exceptions."""

from typing import List, Optional


class StorageException(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class UpstreamUnavailable(StorageException):
    """Raised when a call to the object store fails."""
    pass


class PartialSweepFailure(StorageException):
    """One or more deletions failed during a sweep that otherwise completed."""

    def __init__(self, message: str, failures: Optional[List[dict]] = None):
        super().__init__(message, {"failures": failures or []})
        self.failures = failures or []
