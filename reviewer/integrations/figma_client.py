"""Figma REST API client for the review pipeline.

Fetches document trees and posts anchored comments using Personal Access
Token (PAT) authentication.

Environment:
    FIGMA_TOKEN: Figma Personal Access Token (used when no token is passed)

Usage:
    client = FigmaClient()
    root = await client.get_document("6kGd851qaAX4TiL44vpIrO", "16650:538")
    await client.post_comment("6kGd851qaAX4TiL44vpIrO", "Looks off", "16650:539", 0, 24)
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from reviewer import config
from reviewer.errors import (
    ConfigError,
    NodeNotFoundError,
    RateLimitError,
    ReviewError,
    UpstreamAuthError,
)
from reviewer.settings import FIGMA_HTTP_TIMEOUT, HTTP_MAX_RETRIES

from .http_retry import fetch_with_retry

logger = logging.getLogger("reviewer.integrations.figma")

FIGMA_API_BASE = "https://api.figma.com"
# Only these are resent on 429 or network errors; a resent POST duplicates the comment
_RETRYABLE_METHODS = frozenset({"GET", "HEAD"})


class FigmaClientError(ReviewError):
    """Raised when a Figma API call fails for a reason without a dedicated error."""

    status_code = 502


class FigmaClient:
    """Async Figma REST API client.

    Args:
        token: Figma PAT. Falls back to FIGMA_TOKEN env var.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = FIGMA_HTTP_TIMEOUT,
    ):
        self._token = token or config.FIGMA_TOKEN
        if not self._token:
            raise ConfigError(
                "Figma API key not configured. Set FIGMA_TOKEN or pass figmaApiKey."
            )
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=FIGMA_API_BASE,
                headers={"X-FIGMA-TOKEN": self._token},
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=3),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FigmaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
    ) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            resp = await fetch_with_retry(
                lambda: client.request(method, path, params=params, json=json),
                label=f"figma {method} {path}",
                max_attempts=HTTP_MAX_RETRIES if method in _RETRYABLE_METHODS else 1,
            )
        except httpx.TimeoutException as e:
            raise FigmaClientError(f"Figma API timeout: {path}") from e
        except httpx.TransportError as e:
            raise FigmaClientError(f"Figma API connection error: {path}") from e

        if resp.status_code in (401, 403):
            raise UpstreamAuthError(
                "Invalid Figma API key or insufficient permissions. Please check "
                "your Figma Personal Access Token.",
                status_code=resp.status_code,
            )
        if resp.status_code == 404:
            raise NodeNotFoundError(f"Figma resource not found: {path}")
        if resp.status_code == 429:
            raise RateLimitError("Figma API rate limit exceeded. Please try again later.")
        if resp.status_code < 200 or resp.status_code >= 300:
            raise FigmaClientError(
                f"Figma API error {resp.status_code}: {resp.text[:200]}"
            )

        return resp.json()

    # ------------------------------------------------------------------
    # Core API methods
    # ------------------------------------------------------------------

    async def get_file(self, file_key: str) -> Dict[str, Any]:
        """Fetch a whole Figma file.

        GET /v1/files/:key
        """
        data = await self._request("GET", f"/v1/files/{file_key}")
        logger.info(f"get_file: file={file_key}, name={data.get('name', '')!r}")
        return data

    async def get_file_nodes(
        self,
        file_key: str,
        node_ids: List[str],
    ) -> Dict[str, Any]:
        """Fetch specific nodes from a Figma file.

        GET /v1/files/:key/nodes?ids=...
        """
        ids_param = ",".join(node_ids)
        data = await self._request(
            "GET", f"/v1/files/{file_key}/nodes", params={"ids": ids_param}
        )
        logger.info(
            f"get_file_nodes: file={file_key}, requested={len(node_ids)}, "
            f"returned={len(data.get('nodes') or {})}"
        )
        return data

    async def get_document(
        self,
        file_key: str,
        node_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Root node to review: the given node's subtree, or the whole document."""
        if not node_id:
            data = await self.get_file(file_key)
            document = data.get("document")
            if not document:
                raise NodeNotFoundError(f"Figma file {file_key} has no document")
            return document

        data = await self.get_file_nodes(file_key, [node_id])
        entry = (data.get("nodes") or {}).get(node_id) or {}
        document = entry.get("document")
        if not document:
            raise NodeNotFoundError(f"Node {node_id} not found in Figma file {file_key}")
        return document

    async def post_comment(
        self,
        file_key: str,
        message: str,
        node_id: str,
        offset_x: float = 0,
        offset_y: float = 0,
    ) -> Dict[str, Any]:
        """Post a comment anchored to a node.

        POST /v1/files/:key/comments
        """
        body = {
            "message": message,
            "client_meta": {
                "node_id": node_id,
                "node_offset": {"x": offset_x, "y": offset_y},
            },
        }
        data = await self._request("POST", f"/v1/files/{file_key}/comments", json=body)
        logger.info(f"post_comment: file={file_key}, node={node_id}, id={data.get('id')}")
        return data
