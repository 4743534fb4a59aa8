"""Tests for reviewer.integrations.http_retry."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from reviewer.integrations.http_retry import backoff_delay, fetch_with_retry


def _resp(status):
    resp = MagicMock()
    resp.status_code = status
    return resp


class TestBackoff:

    def test_rate_limit_schedule(self):
        assert [backoff_delay(a, 10.0) for a in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_network_cap(self):
        assert backoff_delay(3, 5.0) == 5.0


class TestFetchWithRetry:

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        send = AsyncMock(return_value=_resp(200))
        sleep = AsyncMock()
        resp = await fetch_with_retry(send, sleep=sleep)
        assert resp.status_code == 200
        assert send.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_429_then_success(self):
        send = AsyncMock(side_effect=[_resp(429), _resp(429), _resp(200)])
        sleep = AsyncMock()
        resp = await fetch_with_retry(send, sleep=sleep)
        assert resp.status_code == 200
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_429_exhausted_returns_last_response(self):
        send = AsyncMock(return_value=_resp(429))
        sleep = AsyncMock()
        resp = await fetch_with_retry(send, sleep=sleep, max_attempts=3)
        assert resp.status_code == 429
        assert send.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.parametrize("status", [401, 403])
    @pytest.mark.asyncio
    async def test_auth_failure_not_retried(self, status):
        send = AsyncMock(return_value=_resp(status))
        sleep = AsyncMock()
        resp = await fetch_with_retry(send, sleep=sleep)
        assert resp.status_code == status
        assert send.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_server_error_returned_without_retry(self):
        send = AsyncMock(return_value=_resp(500))
        resp = await fetch_with_retry(send, sleep=AsyncMock())
        assert resp.status_code == 500
        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_network_error_then_success(self):
        send = AsyncMock(side_effect=[httpx.ConnectError("boom"), _resp(200)])
        sleep = AsyncMock()
        resp = await fetch_with_retry(send, sleep=sleep)
        assert resp.status_code == 200
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_network_errors_exhausted_raise(self):
        send = AsyncMock(side_effect=httpx.ConnectError("down"))
        with pytest.raises(httpx.ConnectError):
            await fetch_with_retry(send, sleep=AsyncMock(), max_attempts=3)
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_network_error_after_response_returns_response(self):
        send = AsyncMock(side_effect=[_resp(429), httpx.ReadTimeout("slow"), httpx.ReadTimeout("slow")])
        resp = await fetch_with_retry(send, sleep=AsyncMock(), max_attempts=3)
        assert resp.status_code == 429
