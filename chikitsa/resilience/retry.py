"""Exponential backoff for Gemini calls

Transient failures (timeouts, dropped connections, 429 and 5xx responses)
are retried with a doubling delay plus or minus 10% jitter. Client errors
such as a bad API key fail on the first attempt.

Persistence writes do not go through here; GamificationService reports
failed writes instead of retrying them.
"""

import asyncio
import random
import logging
from typing import Awaitable, Callable, Any, TypeVar
from functools import wraps
import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3
BASE_DELAY = 1.0  # seconds
MAX_DELAY = 30.0  # seconds
JITTER = 0.1

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable_error(exc: Exception) -> bool:
    """True for httpx timeouts, network errors and retryable status codes"""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.TimeoutException, httpx.NetworkError))


def calculate_backoff(attempt: int) -> float:
    """
    Delay before retry number ``attempt`` (0-indexed)

    BASE_DELAY doubles per attempt up to MAX_DELAY, then a random
    offset of up to JITTER of that value is added or subtracted.
    Attempt 0 waits about 1s, attempt 1 about 2s, attempt 2 about 4s.
    """
    capped = min(BASE_DELAY * 2 ** attempt, MAX_DELAY)
    spread = capped * JITTER
    return max(capped + random.uniform(-spread, spread), 0.0)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying transient httpx failures

    Makes at most ``max_retries + 1`` attempts. The last exception is
    re-raised once retries run out, and any non-retryable exception is
    re-raised straight away.

    Example:
        payload = await retry_with_backoff(self._post, url, body, max_retries=2)
    """
    name = getattr(func, "__name__", repr(func))
    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not is_retryable_error(e):
                logger.warning(f"[RETRY] {name} failed with non-retryable {type(e).__name__}: {e}")
                raise
            if attempt >= max_retries:
                logger.error(f"[RETRY] {name} still failing after {max_retries} retries: {type(e).__name__}")
                raise

            delay = calculate_backoff(attempt)
            attempt += 1
            logger.info(
                f"[RETRY] {name} hit {type(e).__name__}, "
                f"retry {attempt}/{max_retries} in {delay:.2f}s"
            )
            await asyncio.sleep(delay)


def with_retry(max_retries: int = MAX_RETRIES) -> Callable:
    """Decorator form of retry_with_backoff for async functions"""
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(func, *args, max_retries=max_retries, **kwargs)
        return wrapper
    return decorator
