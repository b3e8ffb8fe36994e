import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

import httpx
import openai
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRY_DELAY = 30.0
RETRY_JITTER = 0.5


def is_retryable_status(status_code: int) -> bool:
    """429 (rate limited), 408 (request timeout) and any 5xx."""
    return status_code in (408, 429) or status_code >= 500


def is_retryable(error: BaseException) -> bool:
    """Whether an error from the embeddings API is worth another attempt."""
    if isinstance(error, openai.APIStatusError):
        return is_retryable_status(error.status_code)
    if isinstance(error, httpx.HTTPStatusError):
        return is_retryable_status(error.response.status_code)
    return isinstance(
        error,
        (openai.APIConnectionError, httpx.TransportError, OSError, TimeoutError),
    )


class RetryPolicy:
    """Exponential backoff with jitter for transient remote failures."""

    def __init__(
        self,
        attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = MAX_RETRY_DELAY,
        jitter: float = RETRY_JITTER,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize retry policy.

        Args:
            attempts: Total attempts, including the first call.
            base_delay: Delay in seconds before the first retry.
            max_delay: Upper bound for any single delay.
            jitter: Maximum random seconds added to each delay.
            sleep: Coroutine used to wait between attempts.
        """
        self.attempts = max(1, attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._sleep = sleep

    def compute_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = self.base_delay * 2 ** (attempt - 1) + random.uniform(0, self.jitter)
        return min(delay, self.max_delay)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.compute_delay(retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Attempt {retry_state.attempt_number}/{self.attempts} failed: {error}. "
            f"Retrying in {delay:.2f}s"
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run an async operation, retrying transient failures.

        Raises:
            Exception: The last error once attempts are exhausted, or the
                first non-retryable error.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            wait=self._wait,
            retry=retry_if_exception(is_retryable),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return await retrying(operation)
