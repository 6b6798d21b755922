"""Page/offset pagination helpers.

Query-string parameters are parsed leniently: anything that is not a
positive integer falls back to the default instead of producing an error,
and oversized page sizes are clamped to ``MAX_PAGE_SIZE``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from django.conf import settings

DEFAULT_PAGE = 1


def _default_page_size() -> int:
    return getattr(settings, "DEFAULT_PAGE_SIZE", 10)


def _max_page_size() -> int:
    return getattr(settings, "MAX_PAGE_SIZE", 100)


def _positive_int(value: Any) -> int | None:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed >= 1 else None


@dataclass(frozen=True)
class PageRequest:
    """A validated (page, page_size) pair."""

    page: int
    page_size: int

    @classmethod
    def from_params(cls, page: Any = None, page_size: Any = None) -> PageRequest:
        """Parse raw page parameters, falling back to defaults on bad input."""
        parsed_page = _positive_int(page) or DEFAULT_PAGE
        parsed_size = _positive_int(page_size) or _default_page_size()
        return cls(page=parsed_page, page_size=min(parsed_size, _max_page_size()))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def total_pages(self, total_count: int) -> int:
        return math.ceil(total_count / self.page_size)
