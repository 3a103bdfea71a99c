"""
Shared fixtures: an in-memory ChannelAdvisor API behind httpx.MockTransport.
"""

import asyncio
import json
from typing import Dict, List, Optional

import httpx
import pytest

from channeladvisor.auth import RestCredentials
from channeladvisor.config import Settings
from channeladvisor.rest import ChannelAdvisorClient

BASE_URL = "https://api.test/"
PRODUCTS_URL = "v1/Products"


def make_settings(**overrides) -> Settings:
    values = {
        "base_api_url": BASE_URL,
        "max_concurrent_requests": 5,
        "min_delay_between_starts": 0.0,
        "retry_attempts": 3,
        "min_page_size": 20,
    }
    values.update(overrides)
    return Settings(**values)


class FakeChannelAdvisor:
    """
    Collection endpoint speaking the OData envelope, plus the token endpoint.

    Tokens are issued as token-1, token-2, ... Only tokens in
    ``valid_tokens`` are accepted by the collection endpoint.
    """

    def __init__(self, records: Optional[List[dict]] = None, page_size: int = 20):
        self.records = records if records is not None else []
        self.page_size = page_size
        self.valid_tokens = {"token-1"}
        self.issued = 1
        self.token_error: Optional[str] = None
        self.token_body: Optional[str] = None
        self.failures: Dict[int, List[object]] = {}
        self.delay = 0.0
        self.expire_after: Optional[int] = None

        self.requests: List[httpx.Request] = []
        self.token_requests: List[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def data_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path != "/oauth2/token"]

    def fail(self, skip: int, *outcomes: object) -> None:
        """Queue status codes or exceptions for requests at ``skip``."""
        self.failures.setdefault(skip, []).extend(outcomes)

    def expire_tokens(self) -> None:
        self.valid_tokens.clear()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth2/token":
            self.requests.append(request)
            return self._token(request)

        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self._collection(request)
        finally:
            self.in_flight -= 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_requests.append(request)
        if self.token_body is not None:
            return httpx.Response(200, text=self.token_body)
        if self.token_error is not None:
            return httpx.Response(400, json={"error": self.token_error})

        self.issued += 1
        token = f"token-{self.issued}"
        self.valid_tokens = {token}
        return httpx.Response(
            200, json={"access_token": token, "token_type": "bearer", "expires_in": 3600}
        )

    def _token_of(self, request: httpx.Request) -> str:
        if "access_token" in request.url.params:
            return request.url.params["access_token"]
        return request.headers.get("Authorization", "").replace("Bearer ", "", 1)

    def _collection(self, request: httpx.Request) -> httpx.Response:
        if self._token_of(request) not in self.valid_tokens:
            return httpx.Response(401, text="Access token expired")

        if self.expire_after is not None and len(self.data_requests) >= self.expire_after:
            self.expire_after = None
            self.expire_tokens()

        skip = int(request.url.params.get("$skip", 0))
        queued = self.failures.get(skip)
        if queued:
            outcome = queued.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return httpx.Response(outcome, text=f"Failure {outcome}")

        if request.method != "GET":
            return httpx.Response(204)

        chunk = self.records[skip:skip + self.page_size]
        body = {"Value": chunk}
        if request.url.params.get("$count") == "true":
            body["@odata.count"] = len(self.records)
            if self.page_size < len(self.records):
                body["@odata.nextLink"] = (
                    f"{BASE_URL}{PRODUCTS_URL}?$skip={self.page_size}"
                )
        return httpx.Response(200, content=json.dumps(body).encode())


class RecordingSleep:
    """Backoff replacement recording requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_records(count: int) -> List[dict]:
    return [{"ID": i, "Sku": f"SKU-{i}"} for i in range(1, count + 1)]


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_client(sleep):
    """Factory for clients wired to a fake API."""

    def factory(fake: FakeChannelAdvisor, **kwargs) -> ChannelAdvisorClient:
        config = kwargs.pop("config", None) or make_settings()
        params = {
            "credentials": RestCredentials(application_id="app", shared_secret="secret"),
            "account_name": "Test Account",
            "access_token": "token-1",
            "refresh_token": "refresh-1",
            "config": config,
            "transport": fake.transport(),
            "sleep": sleep,
        }
        params.update(kwargs)
        return ChannelAdvisorClient(**params)

    return factory
