"""
ChannelAdvisor REST API client.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Type

import httpx

from ..auth import LegacyCredentials, RestCredentials, TokenManager
from ..config import Settings, settings as default_settings
from .dispatch import RequestDispatcher, new_mark
from .fetcher import PageFetcher
from .models import PageResult
from .paginator import Paginator
from .retry import OnRetry, RetryPolicy
from .throttle import ConcurrencyThrottle

logger = logging.getLogger(__name__)


def convert_date(date: datetime) -> str:
    """Format a timestamp the way the REST filters expect it (UTC, ``Z``)."""
    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc)
    return date.strftime("%Y-%m-%dT%H:%M:%SZ")


class ChannelAdvisorClient:
    """
    Async client for the ChannelAdvisor REST API.

    One instance serves one tenant account. All calls made through an
    instance share its token, its throttle and its HTTP connection pool.
    """

    def __init__(
        self,
        credentials: RestCredentials,
        account_name: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        legacy_credentials: Optional[LegacyCredentials] = None,
        account_id: Optional[str] = None,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_retry: Optional[OnRetry] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize client.

        Either ``access_token`` and ``refresh_token`` (REST authorized tenant)
        or ``legacy_credentials`` and ``account_id`` (tenant authorized for
        the SOAP API) must be given.

        Args:
            credentials: Application id and shared secret
            account_name: Tenant account name (used for logging)
            access_token: Tenant access token
            refresh_token: Tenant refresh token
            legacy_credentials: Developer key and password
            account_id: Tenant account id
            config: Settings, defaults to the environment based settings
            transport: Optional httpx transport (testing, proxies)
            on_retry: Notified with (attempt, backoff) on every retry
            sleep: Backoff awaitable override
        """
        if not account_name:
            raise ValueError("account_name is required")

        self.config = config or default_settings
        self.account_name = account_name
        self.account_id = account_id

        self._http = httpx.AsyncClient(
            base_url=self.config.base_api_url,
            timeout=httpx.Timeout(
                self.config.request_timeout, connect=self.config.connect_timeout
            ),
            transport=transport,
        )

        self.tokens = TokenManager(
            self._http,
            credentials,
            access_token=access_token,
            refresh_token=refresh_token,
            legacy_credentials=legacy_credentials,
            account_id=account_id,
        )
        self.throttle = ConcurrencyThrottle(
            max_concurrent=self.config.max_concurrent_requests,
            min_delay_between_starts=self.config.min_delay_between_starts,
            queue_capacity=self.config.throttle_queue_capacity,
        )
        self.retry = RetryPolicy(
            self.config.retry_attempts, sleep=sleep or asyncio.sleep
        )

        self.dispatcher = RequestDispatcher(
            self._http,
            self.tokens,
            self.throttle,
            self.retry,
            timeout=self.config.request_timeout,
            on_retry=on_retry,
        )
        self.paginator = Paginator(
            PageFetcher(self.dispatcher),
            min_page_size=self.config.min_page_size,
            max_parallel_pages=self.config.max_concurrent_requests,
        )

    @property
    def name(self) -> str:
        """Tenant account name."""
        return self.account_name

    async def get_all(self, url: str, model: Optional[Type[Any]] = None) -> List[Any]:
        """
        Fetch every record of a collection endpoint.

        Args:
            url: Collection URL relative to the API base, e.g. ``v1/Orders``
            model: Optional item type

        Returns:
            All records (order across pages not guaranteed)
        """
        logger.debug(f"[{self.account_name}] GET all {url}")
        return await self.paginator.fetch_all(url, model=model)

    async def get_page(
        self,
        url: str,
        page_index: int = 1,
        page_size: Optional[int] = None,
        model: Optional[Type[Any]] = None,
    ) -> PageResult:
        """Fetch one page of a collection endpoint."""
        return await self.paginator.fetch_page(url, page_index, page_size, model=model)

    async def get(self, url: str) -> Any:
        """Fetch a single resource and return its decoded JSON body."""
        response = await self.dispatcher.send("GET", url)
        return response.json()

    async def post(self, url: str, data: Any) -> int:
        """
        POST a JSON body. The token travels as a query parameter.

        Returns:
            HTTP status code
        """
        mark = new_mark()
        logger.debug(f"[{self.account_name}] POST {url} (mark={mark})")
        response = await self.dispatcher.send(
            "POST", url, json=data, token_in_query=True, mark=mark
        )
        return response.status_code

    async def put(self, url: str, data: Any) -> int:
        """
        PUT a JSON body. The token travels as a query parameter.

        Returns:
            HTTP status code
        """
        mark = new_mark()
        logger.debug(f"[{self.account_name}] PUT {url} (mark={mark})")
        response = await self.dispatcher.send(
            "PUT", url, json=data, token_in_query=True, mark=mark
        )
        return response.status_code

    async def close(self) -> None:
        """Close the HTTP client."""
        if not self._http.is_closed:
            await self._http.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
