"""Page/limit parsing for list endpoints."""
import math
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_PAGE = 1

# Largest offset a signed 64-bit store column accepts
MAX_OFFSET = 2 ** 63 - 1


@dataclass(frozen=True)
class PageRequest:
    """A clamped page window. ``page`` is 1-based."""
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_query(cls, query: Mapping[str, str], default_limit: int, max_limit: int) -> "PageRequest":
        """
        Read ``page`` and ``limit`` from a query string mapping.

        Values are clamped, never rejected:
        - missing or non-numeric -> default
        - page < 1 -> 1, page past MAX_OFFSET -> last page that still fits
        - limit < 1 -> default_limit, limit > max_limit -> max_limit
        """
        page = _parse_int(query.get("page"))
        limit = _parse_int(query.get("limit"))

        if page is None or page < 1:
            page = DEFAULT_PAGE
        if limit is None or limit < 1:
            limit = default_limit
        limit = min(limit, max_limit)
        page = min(page, MAX_OFFSET // limit + 1)

        return cls(page=page, limit=limit)


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` rows; 0 rows means 0 pages."""
    return math.ceil(total / limit)


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None
