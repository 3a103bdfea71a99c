"""
Access token lifecycle for the ChannelAdvisor REST API.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..errors import AuthError

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "oauth2/token"
LEGACY_SCOPE = ("orders", "inventory")


class RestCredentials(BaseModel):
    """Developer application credentials."""
    application_id: str
    shared_secret: str


class LegacyCredentials(BaseModel):
    """Developer key/password from the SOAP era, usable to obtain REST tokens."""
    developer_key: str
    password: str


class OAuthResponse(BaseModel):
    """Response of the oauth2/token endpoint."""
    access_token: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None


class GrantFlow(str, Enum):
    """How new access tokens are obtained."""
    REFRESH_TOKEN = "refresh_token"
    LEGACY = "soap"


@dataclass
class Credential:
    """Token material of a single tenant account."""
    application_id: str
    shared_secret: str
    access_token: str = ""
    refresh_token: Optional[str] = None


class TokenManager:
    """
    Owns the current access token and refreshes it.

    Concurrent callers discovering an expired token share one in-flight
    refresh instead of each issuing their own token request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credentials: RestCredentials,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        legacy_credentials: Optional[LegacyCredentials] = None,
        account_id: Optional[str] = None,
    ):
        """
        Initialize token manager.

        Args:
            http_client: Client used for the token endpoint (relative URLs)
            credentials: Application id and shared secret
            access_token: Tenant access token (refresh-token flow)
            refresh_token: Tenant refresh token (refresh-token flow)
            legacy_credentials: Developer key/password (legacy flow)
            account_id: Tenant account id (legacy flow)

        Raises:
            ValueError: If neither flow has complete credential material
        """
        if legacy_credentials is not None:
            if not account_id:
                raise ValueError("account_id is required with legacy credentials")
            self.flow = GrantFlow.LEGACY
        elif access_token and refresh_token:
            self.flow = GrantFlow.REFRESH_TOKEN
        else:
            raise ValueError(
                "Either access_token and refresh_token, or legacy credentials "
                "with account_id, must be supplied"
            )

        self._http = http_client
        self._credential = Credential(
            application_id=credentials.application_id,
            shared_secret=credentials.shared_secret,
            access_token=access_token or "",
            refresh_token=refresh_token,
        )
        self._legacy = legacy_credentials
        self._account_id = account_id
        self._pending: Optional[asyncio.Task] = None
        self.version = 0
        self.refresh_count = 0

    def current_token(self) -> str:
        """Snapshot of the access token to put on the next dispatch."""
        return self._credential.access_token

    async def ensure_token(self) -> str:
        """Return the current token, obtaining one first if none is held yet."""
        if not self._credential.access_token:
            return await self.refresh()
        return self._credential.access_token

    async def refresh(self, stale_token: Optional[str] = None) -> str:
        """
        Obtain a new access token, or join the refresh already in flight.

        Args:
            stale_token: The token a request was rejected with. If it has
                already been replaced, the current token is returned without
                another token request.

        Returns:
            The refreshed access token

        Raises:
            AuthError: If the token endpoint did not issue a token
        """
        if stale_token is not None and stale_token != self._credential.access_token:
            logger.debug("Access token already refreshed by a concurrent request")
            return self._credential.access_token

        if self._pending is None:
            self.refresh_count += 1
            self._pending = asyncio.ensure_future(self._refresh_once())

        # Shielded so one cancelled waiter does not abort the shared refresh
        return await asyncio.shield(self._pending)

    async def _refresh_once(self) -> str:
        try:
            token = await self._request_token()
            self._credential.access_token = token
            self.version += 1
            logger.info(f"Access token refreshed ({self.flow.value} flow)")
            return token
        finally:
            self._pending = None

    def _grant_data(self) -> dict:
        if self.flow is GrantFlow.LEGACY:
            return {
                "client_id": self._credential.application_id,
                "grant_type": GrantFlow.LEGACY.value,
                "scope": " ".join(LEGACY_SCOPE),
                "developer_key": self._legacy.developer_key,
                "password": self._legacy.password,
                "account_id": self._account_id,
            }
        return {
            "grant_type": GrantFlow.REFRESH_TOKEN.value,
            "refresh_token": self._credential.refresh_token,
        }

    async def _request_token(self) -> str:
        try:
            response = await self._http.post(
                TOKEN_ENDPOINT,
                data=self._grant_data(),
                auth=(self._credential.application_id, self._credential.shared_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Token request failed: {e}")
            raise AuthError(f"Token request failed: {e}") from e

        body = response.text
        try:
            result = OAuthResponse.model_validate_json(body)
        except ValidationError as e:
            logger.error(f"Garbled token response (HTTP {response.status_code})")
            raise AuthError(
                f"Garbled token response (HTTP {response.status_code})", body=body
            ) from e

        if result.error:
            raise AuthError(f"Token refresh rejected: {result.error}", body=body)

        if not result.access_token:
            raise AuthError(
                f"Token response without access_token (HTTP {response.status_code})",
                body=body,
            )

        return result.access_token
