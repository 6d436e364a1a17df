"""Tests for storage configuration."""

from datetime import timedelta

import pytest

from webapi.storage import RetentionWindow, StorageConfig, create_gateway
from webapi.storage.config import _positive_int
from webapi.storage.memory import InMemoryGateway


class TestPositiveInt:
    """Test environment integer parsing."""

    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.delenv("SWEEP_TEST_VALUE", raising=False)
        assert _positive_int("SWEEP_TEST_VALUE", 7) == 7

    def test_valid(self, monkeypatch):
        monkeypatch.setenv("SWEEP_TEST_VALUE", "12")
        assert _positive_int("SWEEP_TEST_VALUE", 7) == 12

    @pytest.mark.parametrize("raw", ["abc", "0", "-3", "  "])
    def test_invalid_falls_back(self, monkeypatch, raw):
        monkeypatch.setenv("SWEEP_TEST_VALUE", raw)
        assert _positive_int("SWEEP_TEST_VALUE", 7) == 7


class TestRetentionWindow:
    """Test retention window construction."""

    def test_defaults(self):
        window = RetentionWindow()

        assert window.ttl == timedelta(hours=1)
        assert window.scan_interval == timedelta(minutes=15)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FILE_TTL_HOURS", "6")
        monkeypatch.setenv("CLEANUP_INTERVAL_MINUTES", "30")

        window = RetentionWindow.from_env()

        assert window.to_dict() == {"ttl_seconds": 6 * 3600, "scan_interval_seconds": 1800}


class TestStorageConfig:
    """Test StorageConfig validation."""

    def test_memory_backend_needs_no_credentials(self, monkeypatch):
        monkeypatch.setattr(StorageConfig, "backend", "memory")
        monkeypatch.setattr(StorageConfig, "cloud_name", "")

        StorageConfig.validate()

    def test_cloudinary_requires_credentials(self, monkeypatch):
        monkeypatch.setattr(StorageConfig, "backend", "cloudinary")
        monkeypatch.setattr(StorageConfig, "cloud_name", "demo")
        monkeypatch.setattr(StorageConfig, "api_key", "")
        monkeypatch.setattr(StorageConfig, "api_secret", "")

        with pytest.raises(ValueError, match="CLOUDINARY_API_KEY"):
            StorageConfig.validate()

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setattr(StorageConfig, "backend", "s3")

        with pytest.raises(ValueError):
            StorageConfig.validate()

    def test_factory_memory_backend(self, monkeypatch):
        monkeypatch.setattr(StorageConfig, "backend", "memory")

        assert isinstance(create_gateway(), InMemoryGateway)
