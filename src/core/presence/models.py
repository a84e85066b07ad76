# src/core/presence/models.py
"""
Модели реестра присутствия пользователей.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from src.common.constants import PresenceSource


def presence_source(bot_start_count: int, mini_app_launch_count: int) -> PresenceSource:
    """
    Откуда пользователь нам известен.

    | bot > 0 | miniapp > 0 | результат   |
    |---------|-------------|-------------|
    | да      | да          | BOT+MINIAPP |
    | да      | нет         | BOT         |
    | нет     | да          | MINIAPP     |
    | нет     | нет         | UNKNOWN     |
    """
    if bot_start_count > 0 and mini_app_launch_count > 0:
        return PresenceSource.BOT_AND_MINIAPP
    if bot_start_count > 0:
        return PresenceSource.BOT
    if mini_app_launch_count > 0:
        return PresenceSource.MINIAPP
    return PresenceSource.UNKNOWN


class UserProfile(BaseModel):
    """Профильные поля, которые оба канала перезаписывают целиком."""
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    language_code: str = ""

    @field_validator("username", "first_name", "last_name", "language_code", mode="before")
    @classmethod
    def as_string(cls, v: Any) -> str:
        return "" if v is None else str(v)


class RemoteUser(BaseModel):
    """Запись реестра: один пользователь платформы."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    tg_id: int = Field(..., gt=0, description="Telegram ID пользователя")
    username: str = Field("", description="Username в Telegram")
    first_name: str = Field("", description="Имя")
    last_name: str = Field("", description="Фамилия")
    language_code: str = Field("", description="Код языка клиента")

    created_at: datetime = Field(..., description="Первое появление")
    last_seen_at: datetime = Field(..., description="Последнее появление по любому каналу")

    mini_app_launch_count: int = Field(0, ge=0, description="Запусков Mini App")
    bot_start_count: int = Field(0, ge=0, description="Команд /start в боте")
    bot_started_at: Optional[datetime] = Field(None, description="Последний /start")

    @computed_field(alias="presenceSource")  # type: ignore[prop-decorator]
    @property
    def presence_source(self) -> PresenceSource:
        return presence_source(self.bot_start_count, self.mini_app_launch_count)

    @property
    def profile(self) -> UserProfile:
        return UserProfile(
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            language_code=self.language_code,
        )

    def to_api(self) -> dict[str, Any]:
        """Сериализация для ответа API (camelCase)."""
        return self.model_dump(mode="json", by_alias=True)
