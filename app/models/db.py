"""SQLAlchemy ORM models for the review backend.

Tables:
- app_settings: shared key/value settings (selected AI model, per-model
  usage telemetry stored as JSON text)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _gen_uuid() -> str:
    return str(uuid.uuid4())


class AppSettingModel(Base):
    """One shared setting.

    ``value`` is free text; structured settings (usage telemetry) are JSON
    documents serialized into it.
    """

    __tablename__ = "app_settings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_gen_uuid)
    key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<AppSetting key={self.key!r}>"
