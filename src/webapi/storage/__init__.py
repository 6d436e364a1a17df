"""Storage module for temporary objects.

Wraps the external object store and reclaims tagged uploads once they
outlive the retention window.
"""

from .cleanup import RetentionSweeper, SweepReport, SweepState
from .config import RetentionWindow, StorageConfig
from .exceptions import PartialSweepFailure, StorageException, UpstreamUnavailable
from .factory import create_gateway
from .gateway import ListPage, ResourceKind, StoredObject, TaggedObject, UploadGateway
from .scanner import ManualClock, RetentionScanner, SystemClock

__all__ = [
    "RetentionSweeper",
    "SweepReport",
    "SweepState",
    "RetentionWindow",
    "StorageConfig",
    "PartialSweepFailure",
    "StorageException",
    "UpstreamUnavailable",
    "create_gateway",
    "ListPage",
    "ResourceKind",
    "StoredObject",
    "TaggedObject",
    "UploadGateway",
    "ManualClock",
    "RetentionScanner",
    "SystemClock",
]
