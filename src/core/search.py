"""Search engine over stored file metadata.

Matching is a case-insensitive substring test on display name OR caption;
results are ordered most recent first and paged in fixed windows.
"""

from __future__ import annotations

import math

from core.config import IOConfig, PAGE_SIZE
from core.bounded_io import run_store_call
from core.errors import ValidationError
from core.models import SearchPage
from core.ports import FileStorePort


def total_pages_for(total_count: int, page_size: int = PAGE_SIZE) -> int:
    if total_count <= 0:
        return 0
    return math.ceil(total_count / page_size)


def normalize_query(raw_query: str) -> str:
    """Strip surrounding whitespace and reject empty queries."""

    query = (raw_query or "").strip()
    if not query:
        raise ValidationError("search query must not be empty")
    return query


class SearchEngine:
    """Count + page lookups against the file store."""

    def __init__(self, store: FileStorePort, io_config: IOConfig) -> None:
        self._store = store
        self._io = io_config

    async def count(self, query: str) -> int:
        return await run_store_call(
            "count_matching", self._io, self._store.count_matching, normalize_query(query)
        )

    async def search(self, query: str, page: int = 1) -> SearchPage:
        """Return one page of results.

        A query with no matches yields an empty page 1 with zero pages; any
        other page outside [1, total_pages] is a ValidationError.
        """

        query = normalize_query(query)
        total_count = await self.count(query)
        total_pages = total_pages_for(total_count)

        if total_count == 0 and page == 1:
            return SearchPage(query=query, page=1, total_count=0, total_pages=0, items=[])
        if page < 1 or page > total_pages:
            raise ValidationError(f"page {page} is outside 1..{total_pages}")

        offset = (page - 1) * PAGE_SIZE
        items = await run_store_call(
            "find_matching", self._io, self._store.find_matching, query, PAGE_SIZE, offset
        )
        return SearchPage(
            query=query,
            page=page,
            total_count=total_count,
            total_pages=total_pages,
            items=list(items),
        )
