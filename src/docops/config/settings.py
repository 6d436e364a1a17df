"""Backend configuration settings.

Document operation limits and timeouts. Provider credentials and retention
settings live with the storage layer (webapi.storage.config).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

# =============================================================================
# Document Operations
# =============================================================================

# Overall wall-clock bound for a single merge/split/reorder request (seconds)
DOCUMENT_OPERATION_TIMEOUT_S = float(os.getenv("DOCUMENT_OPERATION_TIMEOUT", "300"))

# Thread pool used for PyMuPDF work
DOCUMENT_WORKERS = int(os.getenv("DOCUMENT_WORKERS", "4"))

MIN_MERGE_FILES = 2
MAX_MERGE_FILES = int(os.getenv("MAX_MERGE_FILES", "10"))

# Provider-side PDF optimization only accepts small documents
MAX_PDF_PAGES_FOR_COMPRESSION = 10
MAX_PDF_SIZE_FOR_COMPRESSION = 5 * 1024 * 1024  # 5MB

# =============================================================================
# Image Transformations
# =============================================================================

QUALITY_PRESETS = {
    "low": 30,
    "medium": 60,
    "high": 80,
}
DEFAULT_IMAGE_QUALITY = 60
DEFAULT_TRANSFORM_QUALITY = 80

ALLOWED_IMAGE_FORMATS = ("jpg", "jpeg", "png", "webp")

ASPECT_RATIOS = ("1:1", "4:3", "3:4", "16:9", "9:16")
