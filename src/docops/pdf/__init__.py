"""PDF page-range parsing and structural operations."""

from .engine import PdfStructuralEngine
from .exceptions import DocumentError, InvalidPageOrder, MalformedDocument, NoValidPages
from .page_ranges import parse_page_range, split_page_groups

__all__ = [
    "PdfStructuralEngine",
    "DocumentError",
    "InvalidPageOrder",
    "MalformedDocument",
    "NoValidPages",
    "parse_page_range",
    "split_page_groups",
]
