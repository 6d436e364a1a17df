"""Dependency injection for FastAPI routes."""

from typing import Annotated, Optional

from fastapi import Depends

from .services.documents import DocumentService
from .services.transforms import ImageService
from .storage.cleanup import RetentionSweeper
from .storage.config import StorageConfig
from .storage.factory import create_gateway
from .storage.gateway import UploadGateway

# Singleton service instances
_gateway: Optional[UploadGateway] = None
_document_service: Optional[DocumentService] = None
_image_service: Optional[ImageService] = None
_retention_sweeper: Optional[RetentionSweeper] = None


def get_gateway() -> UploadGateway:
    """Get UploadGateway singleton instance."""
    global _gateway
    if _gateway is None:
        _gateway = create_gateway()
    return _gateway


def get_document_service() -> DocumentService:
    """Get DocumentService singleton instance."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService(get_gateway())
    return _document_service


def get_image_service() -> ImageService:
    """Get ImageService singleton instance."""
    global _image_service
    if _image_service is None:
        _image_service = ImageService(get_gateway())
    return _image_service


def get_retention_sweeper() -> RetentionSweeper:
    """Get RetentionSweeper singleton instance."""
    global _retention_sweeper
    if _retention_sweeper is None:
        _retention_sweeper = RetentionSweeper(get_gateway(), StorageConfig.retention_window())
    return _retention_sweeper


async def reset_services() -> None:
    """Close and drop all singletons (shutdown and tests)."""
    global _gateway, _document_service, _image_service, _retention_sweeper

    if _document_service is not None:
        _document_service.shutdown()
    if _gateway is not None:
        await _gateway.close()

    _gateway = None
    _document_service = None
    _image_service = None
    _retention_sweeper = None


# Dependency annotations for type hints
GatewayDep = Annotated[UploadGateway, Depends(get_gateway)]
DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]
ImageServiceDep = Annotated[ImageService, Depends(get_image_service)]
RetentionSweeperDep = Annotated[RetentionSweeper, Depends(get_retention_sweeper)]
