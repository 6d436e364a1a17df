"""Request-scoped services for the web application."""

from .documents import DocumentService
from .transforms import ImageService

__all__ = ["DocumentService", "ImageService"]
