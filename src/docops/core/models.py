"""Core data models for the backend."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class DocumentResult:
    """A serialized output document."""
    data: bytes = field(repr=False)
    page_count: int
    byte_size: int = 0

    def __post_init__(self):
        if not self.byte_size:
            self.byte_size = len(self.data)


@dataclass
class SplitPart:
    """One output document of a split, with the group that produced it."""
    data: bytes = field(repr=False)
    source_expression: str
    page_count: int
    byte_size: int = 0

    def __post_init__(self):
        if not self.byte_size:
            self.byte_size = len(self.data)


@dataclass
class DocumentInfo:
    """Basic PDF metadata."""
    page_count: int
    byte_size: int
    title: Optional[str] = None
    author: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_count": self.page_count,
            "title": self.title,
            "author": self.author,
            "size": self.byte_size,
        }
