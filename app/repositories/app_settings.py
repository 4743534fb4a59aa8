"""Repository layer for shared application settings.

Provides async key/value access over AppSettingModel plus the per-model
usage telemetry written after every LLM call.
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.db import AppSettingModel

MODEL_SETTING_KEY = "ai_model"
USAGE_KEY_PREFIX = "model_usage_"

_LIMIT_USED_RE = re.compile(r"Limit (\d+), Used (\d+)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dialect_insert(session: AsyncSession):
    """Dialect insert construct that supports ON CONFLICT upserts."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


def usage_key(model: str) -> str:
    return f"{USAGE_KEY_PREFIX}{model}"


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def build_usage_record(
    model: str,
    status: str,
    headers: Optional[Mapping[str, str]] = None,
    error_text: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Usage document for one call: rate-limit headers, then error-text fallback."""
    lowered = {k.lower(): v for k, v in (headers or {}).items()}
    usage: Dict[str, Any] = {
        "model": model,
        "lastUsed": (now or _utcnow()).isoformat(),
        "status": status,
    }

    remaining = _parse_int(lowered.get("x-ratelimit-remaining-tokens"))
    limit = _parse_int(lowered.get("x-ratelimit-limit-tokens"))
    reset_time = lowered.get("x-ratelimit-reset-tokens")
    if remaining is not None:
        usage["remaining"] = remaining
    if limit is not None:
        usage["limit"] = limit
    if reset_time:
        usage["resetTime"] = reset_time

    if error_text:
        match = _LIMIT_USED_RE.search(error_text)
        if match:
            usage["limit"] = int(match.group(1))
            usage["remaining"] = int(match.group(1)) - int(match.group(2))
    return usage


class AppSettingsRepository:
    """Data access layer for app_settings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> Optional[AppSettingModel]:
        """Get a setting row by key."""
        result = await self.session.execute(
            select(AppSettingModel).where(AppSettingModel.key == key)
        )
        return result.scalar_one_or_none()

    async def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        setting = await self.get(key)
        if setting is None or setting.value is None:
            return default
        return setting.value

    async def set_value(self, key: str, value: Optional[str]) -> AppSettingModel:
        """Insert or overwrite a setting (last write wins).

        A single INSERT ... ON CONFLICT statement, so concurrent first
        writers to the same key never trip the unique constraint.
        """
        now = _utcnow()
        insert = _dialect_insert(self.session)
        stmt = insert(AppSettingModel).values(
            id=str(uuid.uuid4()), key=key, value=value, created_at=now, updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        await self.session.execute(stmt)
        result = await self.session.execute(
            select(AppSettingModel)
            .where(AppSettingModel.key == key)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Setting decoded as a JSON object; None when missing or not JSON."""
        raw = await self.get_value(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    async def get_model(self, default: str) -> str:
        """Selected AI model, ``default`` when none has been chosen."""
        return await self.get_value(MODEL_SETTING_KEY) or default

    async def set_model(self, model: str) -> AppSettingModel:
        return await self.set_value(MODEL_SETTING_KEY, model)

    async def record_model_usage(
        self,
        model: str,
        status: str,
        headers: Optional[Mapping[str, str]] = None,
        error_text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store the latest usage document for ``model``, replacing the previous one."""
        usage = build_usage_record(model, status, headers, error_text)
        await self.set_value(usage_key(model), json.dumps(usage))
        return usage

    async def get_model_usage(self, model: str) -> Optional[Dict[str, Any]]:
        return await self.get_json(usage_key(model))
