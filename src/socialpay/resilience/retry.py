"""
Retry Strategies using Tenacity.

Retry policy for ledger reads. Broadcasting a signed intent is never retried:
a failed submission needs a fresh nonce and deadline.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger("socialpay.resilience.retry")

DEFAULT_READ_ATTEMPTS = 3


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network/infrastructure error."""
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        return status == 429 or 500 <= status < 600
    if isinstance(exception, httpx.TransportError):
        # Timeouts, connection refused/reset, protocol errors
        return True
    msg = str(exception).lower()
    return any(x in msg for x in ["timeout", "connection refused", "rate limit"])


async def execute_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    attempts: int = DEFAULT_READ_ATTEMPTS,
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying transient errors with exponential backoff."""
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        stop=stop_after_attempt(max(1, attempts)),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Retrying ledger read... (Attempt {retry_state.attempt_number})"
        ),
    ):
        with attempt:
            return await func(*args, **kwargs)
