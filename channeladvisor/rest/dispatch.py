"""
Single-request dispatch: throttling, retries, auth and error classification.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

import httpx

from ..auth import TokenManager
from ..errors import ChannelAdvisorError, ErrorKind, TokenRefreshed, error_from_response
from .retry import OnRetry, RetryPolicy
from .throttle import ConcurrencyThrottle

logger = logging.getLogger(__name__)


def new_mark() -> str:
    """Correlation id tying together the log lines of one logical call."""
    return uuid.uuid4().hex[:12]


class RequestDispatcher:
    """
    Sends one HTTP request through the throttle and retry policy.

    The throttle slot is taken once and held across all retry attempts.
    The access token is read when each attempt is dispatched, so a retry
    after a refresh always carries the new token.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tokens: TokenManager,
        throttle: ConcurrencyThrottle,
        retry: RetryPolicy,
        timeout: float = 60.0,
        on_retry: Optional[OnRetry] = None,
    ):
        self.http = http_client
        self.tokens = tokens
        self.throttle = throttle
        self.retry = retry
        self.timeout = timeout
        self.on_retry = on_retry

    async def send(
        self,
        method: str,
        url: str,
        json: Any = None,
        token_in_query: bool = False,
        mark: Optional[str] = None,
    ) -> httpx.Response:
        """
        Dispatch a request and return its successful response.

        Args:
            method: HTTP method
            url: URL relative to the API base
            json: JSON body for write calls
            token_in_query: Send the token as ``access_token`` query parameter
                instead of the Authorization header (write endpoints)
            mark: Correlation id for logging

        Raises:
            ChannelAdvisorError: Classified failure after retries
        """
        mark = mark or new_mark()

        async def attempt() -> httpx.Response:
            return await self._send_once(method, url, json, token_in_query)

        async with self.throttle.acquire():
            return await self.retry.execute(
                attempt, on_retry=self._retry_hook(method, url, mark)
            )

    async def _send_once(
        self, method: str, url: str, json: Any, token_in_query: bool
    ) -> httpx.Response:
        token = await self.tokens.ensure_token()

        headers = {"Accept": "application/json"}
        params = None
        if token_in_query:
            params = {"access_token": token}
        else:
            headers["Authorization"] = f"Bearer {token}"

        # Deadline covers the whole call, not each socket read
        try:
            response = await asyncio.wait_for(
                self.http.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=self.timeout,
                ),
                self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"{method} {url} exceeded {self.timeout}s deadline")
            raise ChannelAdvisorError(
                f"{method} {url} timed out after {self.timeout}s",
                ErrorKind.SERVICE_UNAVAILABLE,
            ) from e

        error = error_from_response(response)
        if error is None:
            return response

        if error.kind is ErrorKind.UNAUTHORIZED:
            logger.warning(f"Unauthorized response for {method} {url}, refreshing token")
            # AuthError from a failed refresh propagates without retry
            await self.tokens.refresh(stale_token=token)
            raise TokenRefreshed(str(error), body=error.body)

        if error.kind is ErrorKind.SERVICE_UNAVAILABLE:
            logger.warning(f"Service unavailable for {method} {url}")

        raise error

    def _retry_hook(self, method: str, url: str, mark: str) -> Callable[[int, float], None]:
        def on_retry(attempt: int, delay: float) -> None:
            logger.info(
                f"Call failed, trying repeat call {attempt} time, "
                f"waiting {delay:.0f} seconds. Details: mark={mark}, {method} {url}"
            )
            if self.on_retry is not None:
                self.on_retry(attempt, delay)

        return on_retry
