"""Gateway construction from configuration."""

import logging

from .config import StorageConfig
from .gateway import UploadGateway

logger = logging.getLogger(__name__)


def create_gateway() -> UploadGateway:
    """Build the configured UploadGateway."""
    if StorageConfig.backend == "memory":
        from .memory import InMemoryGateway
        logger.warning("Using in-memory object store; uploads are not persisted")
        return InMemoryGateway()

    from .cloudinary import CloudinaryGateway
    return CloudinaryGateway()
