"""
Cursor driven pagination of a single API endpoint.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

import httpx

from ..core.types import PageRequest, PaginationResult
from ..extractors.cursor_extractor import CursorExtractor, PageResponse

logger = logging.getLogger(__name__)


class CursorPaginator:
    """Drives one paginated endpoint to completion."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_pages: int = 50,
        page_delay: float = 0.5,
        per_page: Optional[int] = None,
        fallback_cursor: Optional[str] = None,
        extractor: Optional[CursorExtractor] = None,
        should_stop: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize the paginator.

        Args:
            client: Authenticated async HTTP client
            max_pages: Page cap per call
            page_delay: Seconds slept between successive pages
            per_page: Requested page size; a page this full with no cursor may
                      use fallback_cursor
            fallback_cursor: Synthesized cursor for full pages without one (None disables)
            extractor: CursorExtractor instance
            should_stop: Returns True when the run was interrupted
        """
        self.client = client
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.per_page = per_page
        self.fallback_cursor = fallback_cursor
        self.extractor = extractor or CursorExtractor()
        self.should_stop = should_stop or (lambda: False)

    async def paginate(self, request: PageRequest, label: str = '') -> PaginationResult:
        """
        Fetch every page of an endpoint call.

        Args:
            request: Initial request descriptor
            label: Name used in log lines (e.g. "events for /checkout")

        Returns:
            PaginationResult with all items seen; `error` is set when a page
            failed, in which case the items are the pages collected before it
        """
        label = label or request.url
        result = PaginationResult()
        seen_cursors: Set[str] = set()
        seen_urls: Set[str] = set()
        fallback_used = False
        current = request

        while True:
            if self.should_stop():
                logger.warning(f"Interrupted while paginating {label} after {result.pages} pages")
                result.stop_reason = 'interrupted'
                break

            url_key = str(httpx.URL(current.url, params=current.params))
            if url_key in seen_urls:
                logger.warning(f"Loop detected for {label}: URL {url_key} was already fetched")
                result.stop_reason = 'cycle'
                break
            seen_urls.add(url_key)

            try:
                response = await self.client.get(
                    current.url, params=current.params, headers=dict(current.headers)
                )
            except httpx.HTTPError as e:
                result.error = f"request failed: {e!r}"
                result.stop_reason = 'error'
                logger.error(f"Error fetching {label} (page {result.pages + 1}): {result.error}")
                break

            if not response.is_success:
                result.error = f"status {response.status_code}: {response.text[:500]}"
                result.stop_reason = 'error'
                logger.error(f"API request failed for {label} (page {result.pages + 1}): {result.error}")
                break

            try:
                body = response.json()
            except ValueError as e:
                result.error = f"invalid JSON body: {e}"
                result.stop_reason = 'error'
                logger.error(f"Could not decode page {result.pages + 1} of {label}: {e}")
                break

            items = body.get('data') if isinstance(body, dict) else None
            if not isinstance(items, list):
                items = []
            result.items.extend(items)
            result.pages += 1
            logger.debug(f"Fetched {len(items)} items for {label} (page {result.pages}); "
                         f"{CursorExtractor.describe(body)}")

            cursor = self.extractor.extract(PageResponse(headers=response.headers, body=body))
            if not cursor and self.fallback_cursor and not fallback_used \
                    and self.per_page and len(items) >= self.per_page:
                logger.warning(f"No cursor on a full page of {label}; using fallback cursor {self.fallback_cursor!r}")
                cursor = self.fallback_cursor
                fallback_used = True

            if not cursor:
                result.stop_reason = 'exhausted'
                break
            if cursor in seen_cursors:
                logger.warning(f"Loop detected for {label}: cursor {cursor!r} was returned twice")
                result.stop_reason = 'cycle'
                break
            if result.pages >= self.max_pages:
                logger.warning(f"Max pages ({self.max_pages}) reached for {label}; stopping with {len(result.items)} items")
                result.stop_reason = 'max_pages'
                break

            seen_cursors.add(cursor)
            current = request.with_cursor(cursor)
            if self.page_delay:
                await asyncio.sleep(self.page_delay)

        logger.info(f"Total items fetched for {label}: {len(result.items)} in {result.pages} pages ({result.stop_reason})")
        return result
