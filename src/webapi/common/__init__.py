"""Common utilities and exceptions for the web application."""

from .exceptions import (
    BaseAppException,
    ValidationException,
    OperationTimeout
)

__all__ = [
    "BaseAppException",
    "ValidationException",
    "OperationTimeout"
]
