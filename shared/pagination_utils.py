"""
Paging helpers for HubSpot.

Two flavours are in use: v3 list memberships page with a `paging.next.after`
cursor, the v1 engagements feed pages with `offset` + `hasMore`.
Both stop at a page cap and let fetch errors propagate to the caller.
"""

import time
import logging
from typing import Dict, List, Any, Callable, Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)

HUBSPOT_MAX_PAGE_SIZE = 100


@dataclass
class PaginationStats:
    pages: int = 0
    items: int = 0
    seconds: float = 0.0
    truncated: bool = False

    @property
    def per_page(self) -> float:
        return self.items / self.pages if self.pages else 0.0


def _next_cursor(page: Dict[str, Any]) -> Optional[str]:
    return ((page.get('paging') or {}).get('next') or {}).get('after')


class CursorPaginator:
    """Walks a v3 endpoint page by page until no `after` cursor comes back."""

    def __init__(self, fetch_page: Callable[[Dict[str, Any]], Dict[str, Any]]):
        self.fetch_page = fetch_page

    def fetch_all(
        self,
        base_params: Optional[Dict[str, Any]] = None,
        batch_size: int = HUBSPOT_MAX_PAGE_SIZE,
        progress_interval: int = 20,
        max_safety_pages: int = 1000
    ) -> Tuple[List[Dict[str, Any]], PaginationStats]:
        started = time.time()
        stats = PaginationStats()
        collected: List[Dict[str, Any]] = []
        # HubSpot answers 400 above 100
        limit = min(int(batch_size or HUBSPOT_MAX_PAGE_SIZE), HUBSPOT_MAX_PAGE_SIZE)
        cursor = None

        while True:
            params = dict(base_params or {}, limit=limit)
            if cursor:
                params['after'] = cursor

            page = self.fetch_page(params) or {}
            batch = page.get('results') or []
            collected.extend(batch)
            stats.pages += 1

            if progress_interval > 0 and stats.pages % progress_interval == 0:
                logger.info(f"📄 {stats.pages} pages read, {len(collected)} records so far")

            cursor = _next_cursor(page)
            if not cursor:
                break
            if stats.pages >= max_safety_pages:
                logger.error(f"❌ Gave up after {stats.pages} pages, cursor never ran out")
                stats.truncated = True
                break

        stats.items = len(collected)
        stats.seconds = time.time() - started
        logger.debug(f"📊 {stats.items} records in {stats.pages} pages ({stats.seconds:.1f}s)")
        return collected, stats


class OffsetPaginator:
    """Walks a v1 feed that answers with `results`, `hasMore` and `offset`."""

    def __init__(self, fetch_page: Callable[[Optional[int]], Dict[str, Any]]):
        self.fetch_page = fetch_page

    def fetch_all(self, max_pages: int = 10) -> Tuple[List[Dict[str, Any]], PaginationStats]:
        started = time.time()
        stats = PaginationStats()
        collected: List[Dict[str, Any]] = []
        offset = None

        while stats.pages < max_pages:
            page = self.fetch_page(offset) or {}
            collected.extend(page.get('results') or [])
            stats.pages += 1
            offset = page.get('offset')
            if not page.get('hasMore') or offset is None:
                break
        else:
            stats.truncated = True

        stats.items = len(collected)
        stats.seconds = time.time() - started
        return collected, stats
