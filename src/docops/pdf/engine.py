"""Structural PDF operations: merge, split, reorder.

Every operation builds fresh output documents by copying pages out of
source documents; input buffers are only read. Documents opened here are
closed before the call returns.
"""

import logging
from typing import List, Sequence

import fitz  # PyMuPDF

from ..core.models import DocumentInfo, DocumentResult, SplitPart
from .exceptions import InvalidPageOrder, MalformedDocument, NoValidPages
from .page_ranges import parse_page_range

logger = logging.getLogger(__name__)


class PdfStructuralEngine:
    """Page-level PDF operations over in-memory buffers."""

    def merge(self, buffers: Sequence[bytes]) -> DocumentResult:
        """
        Concatenate documents in the order given.

        Args:
            buffers: PDF files as bytes

        Returns:
            Merged document

        Raises:
            MalformedDocument: An input could not be parsed
            NoValidPages: No inputs were given
        """
        if not buffers:
            raise NoValidPages("No documents to merge")

        with fitz.open() as merged:
            for index, data in enumerate(buffers):
                with _load(data, index=index) as source:
                    merged.insert_pdf(source)
                    logger.debug(f"Merged input {index}: {source.page_count} pages")

            return _serialize(merged)

    def split(
        self,
        buffer: bytes,
        group_expressions: Sequence[str]
    ) -> List[SplitPart]:
        """
        Build one document per page group.

        Groups resolving to no pages are skipped. Pages inside a group always
        follow document order.

        Args:
            buffer: Source PDF
            group_expressions: Page range expressions, one per output

        Returns:
            Output documents in group order

        Raises:
            MalformedDocument: Source could not be parsed
            NoValidPages: Every group was empty
        """
        parts: List[SplitPart] = []

        with _load(buffer) as source:
            total_pages = source.page_count

            for expression in group_expressions:
                indices = parse_page_range(expression, total_pages)
                if not indices:
                    logger.info(f"Split group {expression!r} selects no pages, skipping")
                    continue

                with fitz.open() as output:
                    _copy_pages(output, source, indices)
                    result = _serialize(output)

                parts.append(SplitPart(
                    data=result.data,
                    source_expression=expression,
                    page_count=result.page_count,
                ))

        if not parts:
            raise NoValidPages(
                "No valid pages specified",
                details={"groups": list(group_expressions), "total_pages": total_pages},
            )

        return parts

    def reorder(self, buffer: bytes, order: Sequence[int]) -> DocumentResult:
        """
        Rebuild a document with pages in the caller's order.

        Out-of-range page numbers are dropped; duplicates are kept.

        Args:
            buffer: Source PDF
            order: 1-based page numbers in the desired order

        Returns:
            Reordered document

        Raises:
            MalformedDocument: Source could not be parsed
            InvalidPageOrder: No page number was in range
        """
        with _load(buffer) as source:
            total_pages = source.page_count
            indices = [page - 1 for page in order if 1 <= page <= total_pages]

            if not indices:
                raise InvalidPageOrder(
                    "Invalid page order specified",
                    details={"order": list(order), "total_pages": total_pages},
                )

            with fitz.open() as output:
                _copy_pages(output, source, indices)
                return _serialize(output)

    def info(self, buffer: bytes) -> DocumentInfo:
        """Read page count, title and author."""
        with _load(buffer) as source:
            metadata = source.metadata or {}
            return DocumentInfo(
                page_count=source.page_count,
                byte_size=len(buffer),
                title=metadata.get("title") or None,
                author=metadata.get("author") or None,
            )


def _load(data: bytes, index: int = 0) -> fitz.Document:
    """Open PDF bytes as a document handle."""
    if not data:
        raise MalformedDocument("Empty document", details={"input": index})

    try:
        document = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise MalformedDocument(
            f"Invalid PDF: {e}",
            details={"input": index},
        )

    if document.needs_pass:
        document.close()
        raise MalformedDocument("Document is encrypted", details={"input": index})

    if document.page_count == 0:
        document.close()
        raise MalformedDocument("Document has no pages", details={"input": index})

    return document


def _copy_pages(target: fitz.Document, source: fitz.Document, indices: Sequence[int]) -> None:
    # One page at a time so repeated and out-of-order indices are honored
    for index in indices:
        target.insert_pdf(source, from_page=index, to_page=index)


def _serialize(document: fitz.Document) -> DocumentResult:
    data = document.tobytes()
    return DocumentResult(data=data, page_count=document.page_count)
