"""
Fetching single pages of OData collection endpoints.
"""

import logging
from typing import Any, Optional, Type

from ..errors import ChannelAdvisorError, ErrorKind
from .dispatch import RequestDispatcher
from .models import PageRequest, PageResult

logger = logging.getLogger(__name__)


def _append_query(url: str, param: str) -> str:
    return url + ("&" if "?" in url else "?") + param


def build_page_url(request: PageRequest) -> str:
    """
    URL for one page.

    ``$count=true`` is added only when the total is requested; ``$skip`` only
    for pages after the first.
    """
    url = request.base_url

    if request.request_total_count:
        url = _append_query(url, "$count=true")

    if request.page_index != 1:
        if not request.page_size:
            raise ValueError(f"page_size is required for page {request.page_index}")
        url = _append_query(url, f"$skip={request.skip}")

    return url


class PageFetcher:
    """Issues the HTTP request for one page and decodes the envelope."""

    def __init__(self, dispatcher: RequestDispatcher):
        self.dispatcher = dispatcher

    async def fetch(
        self,
        request: PageRequest,
        model: Optional[Type[Any]] = None,
        mark: Optional[str] = None,
    ) -> PageResult:
        """
        Fetch one page.

        Args:
            request: Page to fetch
            model: Optional item type to validate ``value`` entries into
            mark: Correlation id for logging

        Returns:
            Decoded page

        Raises:
            ChannelAdvisorError: Classified failure after retries
        """
        url = build_page_url(request)
        response = await self.dispatcher.send("GET", url, mark=mark)

        result_type = PageResult[model] if model is not None else PageResult
        try:
            page = result_type.from_payload(response.json())
        except ValueError as e:
            raise ChannelAdvisorError(
                f"Malformed page response from {url}: {e}",
                ErrorKind.UNKNOWN,
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.debug(
            f"Fetched page {request.page_index} of {request.base_url}: "
            f"{len(page.items)} items"
        )
        return page
