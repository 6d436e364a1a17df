"""Document operations for the web layer.

Runs structural PDF work in a thread pool so it never blocks the event loop,
bounds each request by a wall-clock timeout, and stores results as temporary
objects. If a request fails or times out after some outputs were uploaded,
those outputs are deleted again.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union
from uuid import uuid4

from docops.config.settings import (
    DOCUMENT_OPERATION_TIMEOUT_S,
    DOCUMENT_WORKERS,
    MAX_PDF_PAGES_FOR_COMPRESSION,
    MAX_PDF_SIZE_FOR_COMPRESSION,
)
from docops.core.models import DocumentInfo
from docops.pdf.engine import PdfStructuralEngine
from docops.pdf.page_ranges import split_page_groups

from ..common.exceptions import OperationTimeout, ValidationException
from ..storage.config import StorageConfig
from ..storage.gateway import ResourceKind, StoredObject, UploadGateway

logger = logging.getLogger(__name__)

# (stored public_id, kind) of every output requested by one operation
Pending = List[Tuple[str, ResourceKind]]


def _output_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:8]}"


class DocumentService:
    """Merge, split, reorder and inspect PDFs, storing results as temporary objects."""

    def __init__(
        self,
        gateway: UploadGateway,
        engine: Optional[PdfStructuralEngine] = None,
        max_workers: int = DOCUMENT_WORKERS,
        timeout: float = DOCUMENT_OPERATION_TIMEOUT_S,
    ):
        """
        Initialize document service.

        Args:
            gateway: Object store for results
            engine: Structural PDF engine
            max_workers: Thread pool size for PDF work
            timeout: Seconds allowed per operation, uploads included
        """
        self.gateway = gateway
        self.engine = engine or PdfStructuralEngine()
        self.executor = ThreadPoolExecutor(max_workers=max_workers)
        self.timeout = timeout

        logger.info(f"Document service initialized: workers={max_workers}, timeout={timeout}s")

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False)

    async def _run(self, func: Callable, *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    async def _upload(
        self,
        data: bytes,
        public_id: str,
        pending: Pending,
        resource_kind: ResourceKind = ResourceKind.RAW,
    ) -> StoredObject:
        # Recorded before the call: the provider may store the object even
        # when the response never arrives
        pending.append((f"{StorageConfig.temp_folder}/{public_id}", resource_kind))
        return await self.gateway.upload(
            data,
            resource_kind=resource_kind,
            public_id=public_id,
            format="pdf",
        )

    async def _bounded(
        self,
        operation: str,
        work: Callable[[Pending], Awaitable[Dict[str, Any]]],
    ) -> Dict[str, Any]:
        """Run ``work`` under the operation timeout, discarding outputs on failure."""
        pending: Pending = []
        try:
            return await asyncio.wait_for(work(pending), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"{operation} timed out after {self.timeout}s")
            await self._discard(pending)
            raise OperationTimeout(
                f"{operation} exceeded {self.timeout}s",
                details={"operation": operation},
            )
        except Exception:
            await self._discard(pending)
            raise

    async def _discard(self, pending: Pending) -> None:
        for public_id, resource_kind in pending:
            try:
                # False means the upload never landed
                if await self.gateway.delete(public_id, resource_kind):
                    logger.info(f"Discarded partial output: {public_id}")
            except Exception as e:
                # The retention sweeper reclaims it after the TTL
                logger.warning(f"Failed to discard partial output {public_id}: {e}")

    async def merge_documents(self, buffers: Sequence[bytes]) -> Dict[str, Any]:
        """Merge PDFs in order and store the result."""
        async def work(pending: Pending) -> Dict[str, Any]:
            merged = await self._run(self.engine.merge, list(buffers))
            stored = await self._upload(merged.data, _output_id("merged"), pending)
            return {
                "page_count": merged.page_count,
                "files_count": len(buffers),
                "download_url": stored.url,
                "public_id": stored.public_id,
                "size": merged.byte_size,
            }

        return await self._bounded("merge", work)

    async def split_document(
        self,
        buffer: bytes,
        pages: Union[str, Sequence[str]],
    ) -> Dict[str, Any]:
        """
        Split a PDF into one document per page group.

        Args:
            buffer: Source PDF
            pages: Either a ``;`` separated expression or a list of group expressions
        """
        groups = split_page_groups(pages) if isinstance(pages, str) else list(pages)

        async def work(pending: Pending) -> Dict[str, Any]:
            info = await self._run(self.engine.info, buffer)
            parts = await self._run(self.engine.split, buffer, groups)

            prefix = _output_id("split")
            results = await asyncio.gather(
                *(
                    self._upload(part.data, f"{prefix}_part{index}", pending)
                    for index, part in enumerate(parts, start=1)
                ),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            return {
                "original_page_count": info.page_count,
                "split_files": [
                    {
                        "pages": part.source_expression,
                        "page_count": part.page_count,
                        "download_url": stored.url,
                        "public_id": stored.public_id,
                        "size": part.byte_size,
                    }
                    for part, stored in zip(parts, results)
                ],
            }

        return await self._bounded("split", work)

    async def reorder_document(self, buffer: bytes, order: Sequence[int]) -> Dict[str, Any]:
        """Rebuild a PDF with pages in the given 1-based order and store it."""
        async def work(pending: Pending) -> Dict[str, Any]:
            info = await self._run(self.engine.info, buffer)
            reordered = await self._run(self.engine.reorder, buffer, list(order))
            stored = await self._upload(reordered.data, _output_id("reordered"), pending)
            return {
                "original_page_count": info.page_count,
                "new_page_count": reordered.page_count,
                "new_order": list(order),
                "download_url": stored.url,
                "public_id": stored.public_id,
                "size": reordered.byte_size,
            }

        return await self._bounded("reorder", work)

    async def get_document_info(self, buffer: bytes) -> DocumentInfo:
        """Page count, title and author."""
        try:
            return await asyncio.wait_for(self._run(self.engine.info, buffer), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"info timed out after {self.timeout}s")
            raise OperationTimeout(
                f"info exceeded {self.timeout}s",
                details={"operation": "info"},
            )

    async def compress_document(self, buffer: bytes) -> Dict[str, Any]:
        """
        Hand a small PDF to the provider's optimizer.

        No local compression happens; the returned URL asks the provider for
        ``quality=auto`` delivery.

        Raises:
            ValidationException: Document exceeds the provider's size or page limits
        """
        if len(buffer) > MAX_PDF_SIZE_FOR_COMPRESSION:
            raise ValidationException(
                "PDF too large for compression",
                details={
                    "limitation": f"Maximum file size is {MAX_PDF_SIZE_FOR_COMPRESSION // (1024 * 1024)}MB",
                    "size": len(buffer),
                },
            )

        async def work(pending: Pending) -> Dict[str, Any]:
            info = await self._run(self.engine.info, buffer)
            if info.page_count > MAX_PDF_PAGES_FOR_COMPRESSION:
                raise ValidationException(
                    "PDF has too many pages for compression",
                    details={
                        "limitation": f"Maximum {MAX_PDF_PAGES_FOR_COMPRESSION} pages supported",
                        "page_count": info.page_count,
                    },
                )

            stored = await self._upload(
                buffer, _output_id("compressed"), pending, resource_kind=ResourceKind.IMAGE
            )

            return {
                "original_size": len(buffer),
                "page_count": info.page_count,
                "download_url": self.gateway.build_url(
                    stored.public_id,
                    resource_kind=ResourceKind.IMAGE,
                    transformations=[{"quality": "auto"}],
                    format="pdf",
                ),
                "public_id": stored.public_id,
            }

        return await self._bounded("compress", work)
