"""Page range expressions.

An expression is a comma separated list of 1-based pages (``5``) and
inclusive ranges (``1-3``). Semicolons separate groups that become separate
output documents (``1-3;5;7-10``).
"""

import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


def split_page_groups(expression: str) -> List[str]:
    """Split a semicolon separated expression into non-empty groups."""
    if not expression:
        return []
    return [group.strip() for group in expression.split(";") if group.strip()]


def parse_page_range(expression: str, total_pages: int) -> List[int]:
    """
    Resolve a page range expression to zero-based page indices.

    Malformed atoms and pages outside ``1..total_pages`` are dropped rather
    than rejected. The result is de-duplicated and always ascending, so
    ``"5,1-3"`` and ``"1-3,5"`` select the same pages.

    Args:
        expression: Comma separated pages and ranges, e.g. "1-3,5,7-10"
        total_pages: Number of pages in the source document

    Returns:
        Sorted list of zero-based page indices
    """
    if not expression or total_pages <= 0:
        return []

    pages = set()
    for atom in expression.split(","):
        atom = atom.strip()
        if not atom:
            continue

        if "-" in atom:
            bounds = _parse_bounds(atom)
            if bounds is None:
                logger.debug(f"Skipping malformed range: {atom!r}")
                continue
            start, end = bounds
            # start > end contributes nothing; no swapping
            for page in range(max(start, 1), min(end, total_pages) + 1):
                pages.add(page - 1)
        else:
            page = _parse_int(atom)
            if page is None:
                logger.debug(f"Skipping malformed page: {atom!r}")
                continue
            if 1 <= page <= total_pages:
                pages.add(page - 1)

    return sorted(pages)


def _parse_bounds(atom: str) -> Optional[Tuple[int, int]]:
    parts = atom.split("-")
    if len(parts) != 2:
        return None
    start = _parse_int(parts[0])
    end = _parse_int(parts[1])
    if start is None or end is None:
        return None
    return start, end


def _parse_int(text: str) -> Optional[int]:
    text = text.strip()
    if not text.isdecimal():
        return None
    return int(text)
