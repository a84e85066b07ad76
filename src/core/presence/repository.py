# src/core/presence/repository.py
"""
Репозиторий реестра присутствия.
Все изменения записи идут одним атомарным upsert, без чтения перед записью.
"""

from __future__ import annotations

from typing import Optional

from src.common.constants import Channel
from src.core.presence.models import RemoteUser, UserProfile
from src.infra.database import DatabaseManager
from src.infra.upsert import NOW, Upsert

TABLE = "remote_users"

USER_COLUMNS = (
    "tg_id",
    "username",
    "first_name",
    "last_name",
    "language_code",
    "created_at",
    "last_seen_at",
    "mini_app_launch_count",
    "bot_start_count",
    "bot_started_at",
)

# Каждый канал увеличивает только свой счётчик
CHANNEL_COUNTERS: dict[Channel, str] = {
    Channel.MINIAPP: "mini_app_launch_count",
    Channel.BOT: "bot_start_count",
}

_SELECT = f"SELECT {', '.join(USER_COLUMNS)} FROM {TABLE}"


def build_contact_upsert(channel: Channel, tg_id: int, profile: UserProfile) -> Upsert:
    """
    Оператор «пользователь появился через канал».

    Новая запись: created_at = last_seen_at = now, счётчик канала = 1,
    счётчик другого канала = DEFAULT 0.
    Существующая: профиль перезаписывается, last_seen_at = now,
    счётчик канала + 1, created_at и чужой счётчик не трогаются.
    """
    statement = (
        Upsert(TABLE, "tg_id", tg_id, columns=USER_COLUMNS)
        .set_on_insert("created_at", NOW)
        .set("username", profile.username)
        .set("first_name", profile.first_name)
        .set("last_name", profile.last_name)
        .set("language_code", profile.language_code)
        .set("last_seen_at", NOW)
        .increment(CHANNEL_COUNTERS[channel])
        .returning(*USER_COLUMNS)
    )
    if channel is Channel.BOT:
        statement.set("bot_started_at", NOW)
    return statement


class PresenceRepository:
    """Доступ к таблице remote_users."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных
        """
        self._db = db

    async def record_contact(self, channel: Channel, tg_id: int, profile: UserProfile) -> RemoteUser:
        """Атомарно создаёт или обновляет запись и возвращает её новое состояние."""
        record = await self._db.upsert(build_contact_upsert(channel, tg_id, profile))
        return RemoteUser.model_validate(dict(record))

    async def get_by_id(self, tg_id: int) -> Optional[RemoteUser]:
        """Получает пользователя по Telegram ID."""
        record = await self._db.fetchrow(f"{_SELECT} WHERE tg_id = $1", tg_id)
        if record is None:
            return None
        return RemoteUser.model_validate(dict(record))

    async def list_recent(self, limit: int, offset: int) -> list[RemoteUser]:
        """Пользователи по убыванию last_seen_at."""
        records = await self._db.fetch(
            f"{_SELECT} ORDER BY last_seen_at DESC, tg_id LIMIT $1 OFFSET $2",
            limit,
            offset,
        )
        return [RemoteUser.model_validate(dict(r)) for r in records]
