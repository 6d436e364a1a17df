"""Storage configuration and constants."""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Credentials usually come from the project .env
env_path = Path(__file__).parent.parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def _positive_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, falling back to default."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using default {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using default {default}")
        return default
    return value


# Provider credentials
CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
API_BASE_URL = os.getenv("CLOUDINARY_API_BASE_URL", "https://api.cloudinary.com")

# "cloudinary" or "memory"; memory is used when no credentials are configured
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "cloudinary" if CLOUD_NAME else "memory")

# Tagging
TEMP_TAG = "temp_upload"
TEMP_FOLDER = "temp_uploads"

# Provider call behaviour
REQUEST_TIMEOUT_SECONDS = float(os.getenv("STORAGE_REQUEST_TIMEOUT", "60"))
MAX_RETRIES = _positive_int("STORAGE_MAX_RETRIES", 3)
LIST_PAGE_SIZE = 500  # provider cap for list-by-tag

# Retention
FILE_TTL_HOURS = _positive_int("FILE_TTL_HOURS", 1)
CLEANUP_INTERVAL_MINUTES = _positive_int("CLEANUP_INTERVAL_MINUTES", 15)


@dataclass(frozen=True)
class RetentionWindow:
    """How long temporary objects live and how often they are swept."""

    ttl: timedelta = timedelta(hours=1)
    scan_interval: timedelta = timedelta(minutes=15)

    @classmethod
    def from_env(cls) -> "RetentionWindow":
        return cls(
            ttl=timedelta(hours=_positive_int("FILE_TTL_HOURS", 1)),
            scan_interval=timedelta(minutes=_positive_int("CLEANUP_INTERVAL_MINUTES", 15)),
        )

    def to_dict(self) -> dict:
        return {
            "ttl_seconds": int(self.ttl.total_seconds()),
            "scan_interval_seconds": int(self.scan_interval.total_seconds()),
        }


class StorageConfig:
    """Storage configuration container."""

    backend = STORAGE_BACKEND
    cloud_name = CLOUD_NAME
    api_key = API_KEY
    api_secret = API_SECRET
    api_base_url = API_BASE_URL
    temp_tag = TEMP_TAG
    temp_folder = TEMP_FOLDER
    request_timeout = REQUEST_TIMEOUT_SECONDS
    max_retries = MAX_RETRIES
    list_page_size = LIST_PAGE_SIZE
    file_ttl_hours = FILE_TTL_HOURS
    cleanup_interval_minutes = CLEANUP_INTERVAL_MINUTES

    @classmethod
    def validate(cls) -> None:
        """Validate configuration settings."""
        if cls.backend not in ("cloudinary", "memory"):
            raise ValueError(f"Unknown STORAGE_BACKEND: {cls.backend}")
        if cls.backend == "cloudinary":
            missing = [
                name for name, value in (
                    ("CLOUDINARY_CLOUD_NAME", cls.cloud_name),
                    ("CLOUDINARY_API_KEY", cls.api_key),
                    ("CLOUDINARY_API_SECRET", cls.api_secret),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"Missing storage credentials: {', '.join(missing)}")
        if cls.request_timeout <= 0:
            raise ValueError("STORAGE_REQUEST_TIMEOUT must be positive")

    @classmethod
    def retention_window(cls) -> RetentionWindow:
        return RetentionWindow(
            ttl=timedelta(hours=cls.file_ttl_hours),
            scan_interval=timedelta(minutes=cls.cleanup_interval_minutes),
        )

    @classmethod
    def init(cls) -> None:
        """Initialize storage configuration."""
        cls.validate()
        logger.info(
            f"Storage backend: {cls.backend}, retention: {cls.file_ttl_hours}h, "
            f"sweep interval: {cls.cleanup_interval_minutes}min"
        )
