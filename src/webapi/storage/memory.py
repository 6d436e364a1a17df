"""In-process object store for local development and tests."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from .cloudinary import render_transformations
from .config import StorageConfig
from .gateway import ListPage, ResourceKind, StoredObject, TaggedObject, UploadGateway, temporary_tags

logger = logging.getLogger(__name__)


class InMemoryGateway(UploadGateway):
    """UploadGateway keeping objects in a dict keyed by (kind, public_id)."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._objects: Dict[Tuple[ResourceKind, str], Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._objects)

    def contains(self, public_id: str, resource_kind: ResourceKind) -> bool:
        return (ResourceKind(resource_kind), public_id) in self._objects

    def get_bytes(self, public_id: str, resource_kind: ResourceKind) -> bytes:
        return self._objects[(ResourceKind(resource_kind), public_id)]["data"]

    def put(self, obj: TaggedObject, data: bytes = b"") -> None:
        """Insert an object directly, bypassing upload tagging."""
        self._objects[(obj.resource_kind, obj.public_id)] = {"object": obj, "data": data}

    async def upload(
        self,
        data: bytes,
        *,
        resource_kind: ResourceKind,
        tags: Optional[Sequence[str]] = None,
        public_id: Optional[str] = None,
        format: Optional[str] = None,
    ) -> StoredObject:
        kind = ResourceKind(resource_kind)
        object_id = f"{StorageConfig.temp_folder}/{public_id or uuid4().hex}"
        created_at = self._now()

        self.put(
            TaggedObject(
                public_id=object_id,
                resource_kind=kind,
                created_at=created_at,
                byte_size=len(data),
                tags=temporary_tags(tags),
            ),
            data,
        )

        logger.debug(f"Stored {kind.value}: {object_id} ({len(data)} bytes)")
        return StoredObject(
            public_id=object_id,
            resource_kind=kind,
            byte_size=len(data),
            created_at=created_at,
            url=self.build_url(object_id, resource_kind=kind, format=format),
            format=format,
        )

    async def delete(self, public_id: str, resource_kind: ResourceKind) -> bool:
        return self._objects.pop((ResourceKind(resource_kind), public_id), None) is not None

    async def list_by_tag(
        self,
        tag: str,
        resource_kind: ResourceKind,
        cursor: Optional[str] = None,
        max_results: int = StorageConfig.list_page_size,
    ) -> ListPage:
        kind = ResourceKind(resource_kind)
        matching = sorted(
            (entry["object"] for (entry_kind, _), entry in self._objects.items()
             if entry_kind == kind and tag in entry["object"].tags),
            key=lambda obj: obj.public_id,
        )

        offset = int(cursor) if cursor else 0
        page = matching[offset:offset + max_results]
        next_offset = offset + len(page)
        next_cursor = str(next_offset) if next_offset < len(matching) else None
        return ListPage(items=list(page), next_cursor=next_cursor)

    def build_url(
        self,
        public_id: str,
        *,
        resource_kind: ResourceKind = ResourceKind.IMAGE,
        transformations: Sequence[Mapping[str, Any]] = (),
        format: Optional[str] = None,
    ) -> str:
        kind = ResourceKind(resource_kind)
        segments = ["memory:/", kind.value]
        rendered = render_transformations(transformations)
        if rendered:
            segments.append(rendered)
        segments.append(f"{public_id}.{format}" if format else public_id)
        return "/".join(segments)
