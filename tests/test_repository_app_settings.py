"""Tests for AppSettingsRepository and usage record construction."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import Base
from app.models.db import AppSettingModel
from app.repositories.app_settings import (
    MODEL_SETTING_KEY,
    AppSettingsRepository,
    build_usage_record,
    usage_key,
)


class TestKeyValue:

    @pytest.mark.asyncio
    async def test_set_then_get(self, test_session):
        repo = AppSettingsRepository(test_session)
        await repo.set_value("theme", "dark")
        assert await repo.get_value("theme") == "dark"

    @pytest.mark.asyncio
    async def test_missing_key_returns_default(self, test_session):
        repo = AppSettingsRepository(test_session)
        assert await repo.get_value("nope") is None
        assert await repo.get_value("nope", "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_overwrite_keeps_single_row(self, test_session):
        repo = AppSettingsRepository(test_session)
        first = await repo.set_value("theme", "dark")
        second = await repo.set_value("theme", "light")
        assert first.id == second.id
        assert await repo.get_value("theme") == "light"

    @pytest.mark.asyncio
    async def test_get_json_ignores_non_objects(self, test_session):
        repo = AppSettingsRepository(test_session)
        await repo.set_value("list", "[1, 2]")
        await repo.set_value("broken", "{not json")
        assert await repo.get_json("list") is None
        assert await repo.get_json("broken") is None
        assert await repo.get_json("missing") is None


class TestModelSetting:

    @pytest.mark.asyncio
    async def test_default_when_unset(self, test_session):
        repo = AppSettingsRepository(test_session)
        assert await repo.get_model("google/gemini-2.5-flash") == "google/gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_selected_model(self, test_session):
        repo = AppSettingsRepository(test_session)
        await repo.set_model("openai/gpt-5-mini")
        assert await repo.get_model("google/gemini-2.5-flash") == "openai/gpt-5-mini"
        assert await repo.get_value(MODEL_SETTING_KEY) == "openai/gpt-5-mini"


class TestUsageRecord:

    def test_headers_case_insensitive(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        usage = build_usage_record(
            "m",
            "available",
            {
                "X-RateLimit-Remaining-Tokens": "900",
                "X-RateLimit-Limit-Tokens": "1000",
                "X-RateLimit-Reset-Tokens": "30s",
            },
            now=now,
        )
        assert usage == {
            "model": "m",
            "lastUsed": now.isoformat(),
            "status": "available",
            "remaining": 900,
            "limit": 1000,
            "resetTime": "30s",
        }

    def test_error_text_overrides_headers(self):
        usage = build_usage_record(
            "m",
            "rate_limited",
            {"x-ratelimit-limit-tokens": "5000"},
            error_text="Too many tokens: Limit 1000, Used 900",
        )
        assert usage["limit"] == 1000
        assert usage["remaining"] == 100

    def test_non_numeric_header_ignored(self):
        usage = build_usage_record("m", "error", {"x-ratelimit-remaining-tokens": "lots"})
        assert "remaining" not in usage

    @pytest.mark.asyncio
    async def test_last_write_wins(self, test_session):
        repo = AppSettingsRepository(test_session)
        await repo.record_model_usage("m", "available", {"x-ratelimit-remaining-tokens": "10"})
        await repo.record_model_usage("m", "error")

        usage = await repo.get_model_usage("m")
        assert usage["status"] == "error"
        assert "remaining" not in usage
        stored = json.loads(await repo.get_value(usage_key("m")))
        assert stored == usage

    @pytest.mark.asyncio
    async def test_usage_keyed_per_model(self, test_session):
        repo = AppSettingsRepository(test_session)
        await repo.record_model_usage("a", "available")
        assert await repo.get_model_usage("b") is None
        assert usage_key("a") == "model_usage_a"


class TestConcurrentWriters:

    @pytest.mark.asyncio
    async def test_first_writes_from_two_sessions(self, tmp_path):
        # File database: each session gets its own connection
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'settings.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async def write(value):
            async with factory() as session:
                await AppSettingsRepository(session).set_value(usage_key("m"), value)
                await session.commit()

        try:
            await asyncio.gather(write('{"n": 1}'), write('{"n": 2}'))

            async with factory() as session:
                stored = await AppSettingsRepository(session).get_value(usage_key("m"))
                rows = await session.scalar(select(func.count()).select_from(AppSettingModel))
            assert stored in ('{"n": 1}', '{"n": 2}')
            assert rows == 1
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_upsert_refreshes_loaded_row(self, test_session):
        repo = AppSettingsRepository(test_session)
        await repo.set_value("theme", "dark")
        loaded = await repo.get("theme")
        await repo.set_value("theme", "light")
        assert loaded.value == "light"
