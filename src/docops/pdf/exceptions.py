"""Document operation exceptions."""

from typing import Any, Dict, Optional


class DocumentError(Exception):
    """Base exception for structural document operations."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class MalformedDocument(DocumentError):
    """Raised when input bytes cannot be parsed as a PDF."""
    pass


class NoValidPages(DocumentError):
    """Raised when a split resolves every group to zero pages."""
    pass


class InvalidPageOrder(DocumentError):
    """Raised when a reorder keeps no page numbers after filtering."""
    pass
