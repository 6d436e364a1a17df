"""Pytest configuration for test suite."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Get paths
project_root = Path(__file__).parent.parent
src_dir = project_root / "src"

# Add src before any test imports so "docops.*" and "webapi.*" resolve
# without an installed package
sys.path.insert(0, str(src_dir))


def pytest_configure(config):
    """Called after command line options have been parsed."""
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


@pytest.fixture
def make_pdf():
    """Build an in-memory PDF whose page N carries the text "Page N"."""
    import fitz

    def _make(pages: int, title: str = "", author: str = "") -> bytes:
        with fitz.open() as doc:
            for number in range(1, pages + 1):
                page = doc.new_page()
                page.insert_text((72, 72), f"Page {number}")
            if title or author:
                doc.set_metadata({"title": title, "author": author})
            return doc.tobytes()

    return _make


@pytest.fixture
def page_texts():
    """Return the "Page N" label of every page in a PDF, in order."""
    import fitz

    def _texts(data: bytes) -> list:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return [page.get_text().strip() for page in doc]

    return _texts


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    from webapi.storage.scanner import ManualClock
    return ManualClock(fixed_now)


@pytest.fixture
def memory_gateway(clock):
    from webapi.storage.memory import InMemoryGateway
    return InMemoryGateway(now=clock.now)
