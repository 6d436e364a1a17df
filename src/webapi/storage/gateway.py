"""
Object store boundary.

UploadGateway is the only way the application touches the external
object-storage/transformation provider. Everything uploaded through it is
tagged as a temporary object so the retention sweeper can find it again.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .config import StorageConfig


class ResourceKind(str, Enum):
    """Provider resource types holding temporary objects."""
    IMAGE = "image"
    RAW = "raw"


@dataclass
class StoredObject:
    """Result of an upload."""
    public_id: str
    resource_kind: ResourceKind
    byte_size: int
    created_at: datetime
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


@dataclass
class TaggedObject:
    """An object found by a tag listing."""
    public_id: str
    resource_kind: ResourceKind
    created_at: datetime
    byte_size: int = 0
    tags: List[str] = field(default_factory=list)


@dataclass
class ListPage:
    """One page of a tag listing."""
    items: List[TaggedObject]
    next_cursor: Optional[str] = None


def temporary_tags(extra: Optional[Sequence[str]] = None) -> List[str]:
    """Tags every upload carries: the temporary marker plus an upload timestamp."""
    tags = [StorageConfig.temp_tag, f"uploaded_{int(time.time() * 1000)}"]
    for tag in extra or ():
        if tag not in tags:
            tags.append(tag)
    return tags


class UploadGateway(ABC):
    """Abstract object store / transformation provider."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        *,
        resource_kind: ResourceKind,
        tags: Optional[Sequence[str]] = None,
        public_id: Optional[str] = None,
        format: Optional[str] = None,
    ) -> StoredObject:
        """Store bytes as a temporary object."""

    @abstractmethod
    async def delete(self, public_id: str, resource_kind: ResourceKind) -> bool:
        """Delete an object. Returns False if it did not exist."""

    @abstractmethod
    async def list_by_tag(
        self,
        tag: str,
        resource_kind: ResourceKind,
        cursor: Optional[str] = None,
        max_results: int = 500,
    ) -> ListPage:
        """Fetch one page of objects carrying ``tag``."""

    @abstractmethod
    def build_url(
        self,
        public_id: str,
        *,
        resource_kind: ResourceKind = ResourceKind.IMAGE,
        transformations: Sequence[Dict[str, Any]] = (),
        format: Optional[str] = None,
    ) -> str:
        """Delivery URL for an object with declarative transformations applied."""

    async def close(self) -> None:
        """Release client resources."""
        return None
