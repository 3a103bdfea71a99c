"""
Retry with exponential backoff for single REST operations.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import ChannelAdvisorError, is_transient, wrap_error
from .models import RetryContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, float], None]


class RetryPolicy:
    """
    Retries transient failures with ``2 ** attempt`` second backoff.

    Permanent failures propagate immediately. Whatever escapes is a
    ``ChannelAdvisorError``; foreign exceptions are wrapped with the original
    kept as ``__cause__``.
    """

    BASE_RETRY_DELAY = 2.0  # seconds, raised to the attempt number

    def __init__(
        self,
        max_attempts: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            max_attempts: Total attempts including the first one
            sleep: Awaitable used for backoff waits
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._sleep = sleep

    def backoff(self, attempt: int) -> float:
        """Wait before retry number ``attempt`` (1-based)."""
        return self.BASE_RETRY_DELAY ** attempt

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[OnRetry] = None,
    ) -> T:
        """
        Execute an operation with retries.

        Args:
            operation: Zero-argument coroutine function, called once per attempt
            on_retry: Notified with (attempt, backoff seconds) before each retry

        Returns:
            The operation's result

        Raises:
            ChannelAdvisorError: The last classified error
        """
        context = RetryContext()

        while True:
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                context.last_error = e
                if not is_transient(e) or context.attempt_number >= self.max_attempts:
                    raise wrap_error(e) from _cause_of(e)

            delay = self.backoff(context.attempt_number)
            self._notify(on_retry, context.attempt_number, delay)
            await self._sleep(delay)

            context.elapsed_backoff += delay
            context.backoffs.append(delay)
            context.attempt_number += 1

    @staticmethod
    def _notify(on_retry: Optional[OnRetry], attempt: int, delay: float) -> None:
        if on_retry is None:
            return
        try:
            on_retry(attempt, delay)
        except Exception:
            logger.exception("Retry notification hook failed")


def _cause_of(error: Exception) -> Optional[BaseException]:
    # Domain errors keep their own cause, foreign ones become the cause
    if isinstance(error, ChannelAdvisorError):
        return error.__cause__
    return error
