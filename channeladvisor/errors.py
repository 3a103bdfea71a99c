"""
Error taxonomy and HTTP response classification.

Every failure surfaced by the REST layer is a ``ChannelAdvisorError`` with an
explicit ``kind``. Retry and propagation logic branch on the kind, never on
the concrete subclass.
"""

from enum import Enum
from typing import Optional

import httpx


class ErrorKind(str, Enum):
    """Discriminant of a classified failure."""
    UNAUTHORIZED = "unauthorized"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CLIENT_ERROR = "client_error"
    UNKNOWN = "unknown"


class ChannelAdvisorError(Exception):
    """Base exception for ChannelAdvisor client errors."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.body = body

    @property
    def transient(self) -> bool:
        """Whether retrying may resolve this failure."""
        return self.kind is ErrorKind.SERVICE_UNAVAILABLE

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value}, "
            f"status_code={self.status_code}, message={str(self)!r})"
        )


class AuthError(ChannelAdvisorError):
    """Token refresh failed; the operation cannot be authorized."""

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message, ErrorKind.UNAUTHORIZED, 401, body)


class TokenRefreshed(ChannelAdvisorError):
    """
    Request was rejected as unauthorized and the token has since been
    refreshed. Retrying with the new token is expected to succeed.
    """

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message, ErrorKind.UNAUTHORIZED, 401, body)

    @property
    def transient(self) -> bool:
        return True


class ThrottleQueueFull(ChannelAdvisorError):
    """Too many callers are already waiting for a throttle slot."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.CLIENT_ERROR)


def classify_status(status_code: int) -> Optional[ErrorKind]:
    """Map an HTTP status to an error kind, or None for success."""
    if 200 <= status_code < 300:
        return None
    if status_code == 401:
        return ErrorKind.UNAUTHORIZED
    if status_code == 503:
        return ErrorKind.SERVICE_UNAVAILABLE
    # Any other failure status is permanent; UNKNOWN is kept for foreign errors
    return ErrorKind.CLIENT_ERROR


def error_from_response(response: httpx.Response) -> Optional[ChannelAdvisorError]:
    """
    Build the classified error for a non-success response.

    Unauthorized responses are returned as plain UNAUTHORIZED errors; turning
    them into ``TokenRefreshed`` is the caller's job since it owns the token.

    Returns:
        None when the response is successful
    """
    kind = classify_status(response.status_code)
    if kind is None:
        return None

    body = response.text
    message = f"HTTP {response.status_code} from {response.request.url}: {body}"
    return ChannelAdvisorError(
        message, kind, status_code=response.status_code, body=body
    )


def is_transient(error: BaseException) -> bool:
    """Whether an exception raised by a single attempt may be retried."""
    if isinstance(error, ChannelAdvisorError):
        return error.transient
    # Network failures and timeouts
    return isinstance(error, httpx.TransportError)


def wrap_error(error: Exception) -> ChannelAdvisorError:
    """Wrap an arbitrary exception into the domain taxonomy, keeping the cause."""
    if isinstance(error, ChannelAdvisorError):
        return error
    if isinstance(error, httpx.TransportError):
        wrapped = ChannelAdvisorError(
            str(error) or type(error).__name__, ErrorKind.SERVICE_UNAVAILABLE
        )
    else:
        wrapped = ChannelAdvisorError(str(error), ErrorKind.UNKNOWN)
    wrapped.__cause__ = error
    return wrapped
