"""Custom exceptions for the web application."""

from typing import Optional, Dict, Any


class BaseAppException(Exception):
    """Base exception for all application errors."""

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


class ValidationException(BaseAppException):
    """Raised when request validation fails."""
    pass


class OperationTimeout(BaseAppException):
    """Raised when a document operation exceeds its time budget."""
    pass
