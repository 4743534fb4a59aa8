"""Retry policy shared by the Figma and LLM clients.

- 429: exponential backoff capped at HTTP_RATE_LIMIT_MAX_DELAY, then retry
- 401/403: returned immediately, never retried
- network error: exponential backoff capped at HTTP_NETWORK_MAX_DELAY
- attempts exhausted: the last response is returned; if no response was ever
  received the last network error is raised
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from reviewer.settings import (
    HTTP_MAX_RETRIES,
    HTTP_NETWORK_MAX_DELAY,
    HTTP_RATE_LIMIT_MAX_DELAY,
    HTTP_RETRY_BASE_DELAY,
)

logger = logging.getLogger(__name__)

AUTH_STATUSES = (401, 403)


def backoff_delay(attempt: int, cap: float, base: float = HTTP_RETRY_BASE_DELAY) -> float:
    """``min(base * 2**attempt, cap)`` with a 0-based attempt number."""
    return min(base * (2 ** attempt), cap)


async def fetch_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    label: str = "request",
    max_attempts: int = HTTP_MAX_RETRIES,
    rate_limit_cap: float = HTTP_RATE_LIMIT_MAX_DELAY,
    network_cap: float = HTTP_NETWORK_MAX_DELAY,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> httpx.Response:
    sleep = sleep or asyncio.sleep
    last_response: Optional[httpx.Response] = None
    last_error: Optional[httpx.TransportError] = None

    for attempt in range(max_attempts):
        is_last = attempt == max_attempts - 1
        try:
            response = await send()
        except httpx.TransportError as e:
            last_error = e
            if is_last:
                break
            delay = backoff_delay(attempt, network_cap)
            logger.warning(
                "%s: network error (%s), retry %d/%d in %.1fs",
                label, e.__class__.__name__, attempt + 1, max_attempts - 1, delay,
            )
            await sleep(delay)
            continue

        last_response = response
        if response.status_code in AUTH_STATUSES:
            return response
        if response.status_code == 429 and not is_last:
            delay = backoff_delay(attempt, rate_limit_cap)
            logger.warning(
                "%s: rate limited (429), retry %d/%d in %.1fs",
                label, attempt + 1, max_attempts - 1, delay,
            )
            await sleep(delay)
            continue
        return response

    if last_response is not None:
        return last_response
    if last_error is None:
        raise httpx.TransportError(f"{label}: max retries exceeded")
    logger.error("%s: giving up after %d attempts: %s", label, max_attempts, last_error)
    raise last_error
