"""OpenAI-compatible chat completions client for the LLM gateway.

Every response, successful or not, is reported to an optional usage hook so
the caller can persist rate-limit telemetry for the selected model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from reviewer import config
from reviewer.errors import (
    ConfigError,
    QuotaExceededError,
    RateLimitError,
    ReviewError,
    UpstreamAuthError,
)
from reviewer.settings import LLM_HTTP_TIMEOUT, LLM_MAX_TOKENS

from .http_retry import fetch_with_retry

logger = logging.getLogger("reviewer.integrations.llm")

# Usage statuses written to the telemetry store
USAGE_AVAILABLE = "available"
USAGE_RATE_LIMITED = "rate_limited"
USAGE_ERROR = "error"

# (model, status, headers, error_text) -> None
UsageHook = Callable[[str, str, Mapping[str, str], Optional[str]], Awaitable[None]]


class LLMClientError(ReviewError):
    """Gateway answered with an unexpected status or an unreadable body."""


@dataclass
class LLMResponse:
    text: str
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None


class LLMClient:
    """Chat completions over httpx.

    Args:
        api_key: Gateway key. Falls back to LLM_API_KEY env var.
        api_url: Full chat completions URL.
        on_usage: Awaitable hook called with telemetry after each call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: float = LLM_HTTP_TIMEOUT,
        on_usage: Optional[UsageHook] = None,
    ):
        self._api_key = api_key or config.LLM_API_KEY
        if not self._api_key:
            raise ConfigError("LLM_API_KEY is not configured")
        self._api_url = api_url or config.LLM_API_URL
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self.on_usage = on_usage

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _report(
        self,
        model: str,
        status: str,
        headers: Mapping[str, str],
        error_text: Optional[str] = None,
    ) -> None:
        if self.on_usage is None:
            return
        try:
            await self.on_usage(model, status, headers, error_text)
        except Exception as e:
            # Telemetry must not fail the review
            logger.error("LLMClient: storing usage info failed: %s", e)

    async def complete(
        self,
        system: str,
        user: str,
        model: str,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Send one system + user exchange and return the first choice."""
        body: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            body["temperature"] = temperature

        client = await self._get_client()
        logger.info("LLMClient: calling %s (max_tokens=%d)", model, max_tokens)
        try:
            resp = await fetch_with_retry(
                lambda: client.post(self._api_url, json=body),
                label=f"llm {model}",
            )
        except httpx.TransportError as e:
            raise LLMClientError(f"AI gateway connection error: {e}") from e

        headers = dict(resp.headers)
        if resp.status_code != 200:
            error_text = resp.text
            logger.error("LLMClient: AI API error %d: %s", resp.status_code, error_text[:500])
            await self._report(
                model,
                USAGE_RATE_LIMITED if resp.status_code == 429 else USAGE_ERROR,
                headers,
                error_text,
            )
            if resp.status_code in (401, 403):
                raise UpstreamAuthError(
                    "AI gateway rejected the API key", status_code=resp.status_code,
                )
            if resp.status_code == 429:
                raise RateLimitError("Rate limit exceeded. Please try again later.")
            if resp.status_code == 402:
                raise QuotaExceededError("AI usage limit reached. Please add credits to continue.")
            raise LLMClientError(f"AI analysis failed: {resp.status_code}")

        await self._report(model, USAGE_AVAILABLE, headers)

        try:
            data = resp.json()
            choice = data["choices"][0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMClientError(f"Malformed AI gateway response: {e}") from e

        message = choice.get("message") or {}
        text = message.get("content") or ""
        finish_reason = choice.get("finish_reason")
        usage = data.get("usage")
        if not text.strip():
            logger.error(
                "LLMClient: empty content, finish_reason=%s, usage=%s", finish_reason, usage
            )
        else:
            logger.info("LLMClient: response (first 500 chars): %s", text[:500])

        return LLMResponse(
            text=text,
            status_code=resp.status_code,
            headers=headers,
            finish_reason=finish_reason,
            usage=usage,
        )
