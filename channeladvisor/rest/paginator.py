"""
Fetching complete OData collections across pages.
"""

import asyncio
import logging
from typing import Any, List, Optional, Type

import httpx

from .dispatch import new_mark
from .fetcher import PageFetcher
from .models import PageRequest, PageResult

logger = logging.getLogger(__name__)

MIN_PAGE_SIZE = 20


class Paginator:
    """
    Turns one collection query into a sequence of page requests.

    Page 1 is fetched alone with ``$count=true``; its total count and next
    link decide the page plan. Remaining pages are fetched concurrently and
    merged once all of them have completed.

    Item order across pages is not part of the contract. Callers that need
    a stable order must sort by a field of the items.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        min_page_size: int = MIN_PAGE_SIZE,
        max_parallel_pages: int = 5,
    ):
        """
        Args:
            fetcher: Single page fetcher
            min_page_size: Page size assumed when the next link has no skip
            max_parallel_pages: Page requests one pagination keeps pending
        """
        self.fetcher = fetcher
        self.min_page_size = min_page_size
        self.max_parallel_pages = max_parallel_pages

    def page_size_from_link(self, next_page_link: str) -> int:
        """Page size the server chose, read from the skip of its next link."""
        try:
            params = httpx.URL(next_page_link).params
        except (httpx.InvalidURL, TypeError):
            return self.min_page_size

        for key in ("$skip", "skip"):
            value = params.get(key)
            if value is None:
                continue
            try:
                size = int(value)
            except ValueError:
                break
            if size > 0:
                return size
            break

        return self.min_page_size

    async def fetch_page(
        self,
        base_url: str,
        page_index: int = 1,
        page_size: Optional[int] = None,
        model: Optional[Type[Any]] = None,
    ) -> PageResult:
        """Fetch a single page; the first page also requests the total count."""
        request = PageRequest(
            base_url=base_url,
            page_index=page_index,
            page_size=page_size,
            request_total_count=page_index == 1,
        )
        return await self.fetcher.fetch(request, model=model)

    async def fetch_all(
        self,
        base_url: str,
        model: Optional[Type[Any]] = None,
    ) -> List[Any]:
        """
        Fetch every record of a collection query.

        Args:
            base_url: Collection URL, optionally with its own query string
            model: Optional item type

        Returns:
            All records

        Raises:
            ChannelAdvisorError: If any page fails; no partial results
        """
        mark = new_mark()

        first = await self.fetcher.fetch(
            PageRequest(base_url=base_url, page_index=1, request_total_count=True),
            model=model,
            mark=mark,
        )
        items = list(first.items)

        if first.next_page_link is None or first.total_count is None:
            return items

        page_size = self.page_size_from_link(first.next_page_link)
        if len(first.items) < page_size:
            return items

        # page_count carries a +1 margin; it is the exclusive upper bound here
        total_pages = first.page_count(page_size)
        logger.info(
            f"Fetching {base_url}: {first.total_count} records, "
            f"page size {page_size}, {total_pages} pages (mark={mark})"
        )

        buffers = await self._fetch_pages(
            base_url, range(2, total_pages), page_size, model, mark
        )

        for buffer in buffers:
            items.extend(buffer)
            if len(buffer) < page_size:
                # Short or empty page ends the data
                break

        logger.info(f"Fetched {len(items)} records from {base_url} (mark={mark})")
        return items

    async def _fetch_pages(
        self,
        base_url: str,
        pages: range,
        page_size: int,
        model: Optional[Type[Any]],
        mark: str,
    ) -> List[List[Any]]:
        semaphore = asyncio.Semaphore(self.max_parallel_pages)

        async def fetch_with_semaphore(page_index: int) -> List[Any]:
            async with semaphore:
                page = await self.fetcher.fetch(
                    PageRequest(
                        base_url=base_url,
                        page_index=page_index,
                        page_size=page_size,
                    ),
                    model=model,
                    mark=mark,
                )
                return list(page.items)

        tasks = [asyncio.ensure_future(fetch_with_semaphore(page)) for page in pages]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
