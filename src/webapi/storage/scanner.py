"""Tag scanning and age classification for temporary objects."""

import logging
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, List, Optional, Protocol, Tuple

from .config import RetentionWindow, StorageConfig
from .gateway import ResourceKind, TaggedObject, UploadGateway

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


class RetentionScanner:
    """Lists tagged objects across provider pages and classifies them by age."""

    def __init__(
        self,
        gateway: UploadGateway,
        clock: Optional[Clock] = None,
        page_size: int = StorageConfig.list_page_size,
    ):
        self.gateway = gateway
        self.clock = clock or SystemClock()
        self.page_size = min(page_size, StorageConfig.list_page_size)

    async def list_tagged(
        self,
        tag: str,
        resource_kind: ResourceKind,
    ) -> AsyncIterator[TaggedObject]:
        """
        Yield every object carrying ``tag``, fetching pages on demand.

        Each call starts a new listing from the first page.

        Raises:
            UpstreamUnavailable: A page could not be fetched
        """
        cursor = None
        pages = 0
        while True:
            page = await self.gateway.list_by_tag(
                tag, resource_kind, cursor=cursor, max_results=self.page_size
            )
            pages += 1
            for item in page.items:
                yield item

            if not page.next_cursor:
                break
            cursor = page.next_cursor

        logger.debug(f"Listed tag {tag!r} ({resource_kind.value}) in {pages} page(s)")

    def is_expired(self, obj: TaggedObject, window: RetentionWindow) -> bool:
        """True when the object is older than the window's TTL, as of now."""
        return self.clock.now() - obj.created_at > window.ttl

    async def find_expired(
        self,
        resource_kind: ResourceKind,
        window: RetentionWindow,
        tag: str = StorageConfig.temp_tag,
    ) -> Tuple[int, List[TaggedObject]]:
        """
        Scan one resource kind.

        Returns:
            Tuple of (objects examined, expired objects)
        """
        examined = 0
        expired: List[TaggedObject] = []
        async for obj in self.list_tagged(tag, resource_kind):
            examined += 1
            if self.is_expired(obj, window):
                expired.append(obj)
        return examined, expired
