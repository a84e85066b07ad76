# src/core/presence/service.py
"""
Реестр присутствия (PresenceLedger).

Два независимых канала пишут в одну запись пользователя:
- MINIAPP - запуск Mini App с проверенной подписью initData;
- BOT - событие /start от процесса бота, подтверждённое общим секретом.

Каждый вызов upsert - ровно один атомарный оператор в БД, поэтому
N параллельных вызовов одного канала дают ровно +N к его счётчику.
"""

from __future__ import annotations

from typing import Any

from src.common.constants import MAX_TG_ID, Channel, TypeMsg
from src.common.errors import OutOfRange, UserNotFound
from src.common.logger import log_info
from src.core.presence.models import RemoteUser, UserProfile
from src.core.presence.repository import PresenceRepository

MAX_LIST_LIMIT = 500


def ensure_tg_id(value: Any, field: str = "tgId") -> int:
    """Положительное целое в пределах BIGINT, иначе OutOfRange."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= MAX_TG_ID:
        raise OutOfRange(field, f"{field} must be a positive integer")
    return value


class PresenceLedger:
    """Атомарный upsert присутствия по двум каналам."""

    def __init__(self, repository: PresenceRepository) -> None:
        self.repository = repository

    async def upsert(self, channel: Channel, tg_id: int, profile: UserProfile) -> RemoteUser:
        """
        Фиксирует появление пользователя через канал.

        Args:
            channel: MINIAPP или BOT
            tg_id: Telegram ID (положительное целое)
            profile: Профиль, перезаписывает сохранённый целиком

        Returns:
            Запись после обновления
        """
        tg_id = ensure_tg_id(tg_id)
        channel = Channel(channel)

        user = await self.repository.record_contact(channel, tg_id, profile)

        await log_info(
            f"Присутствие: channel={channel.value} tg_id={tg_id} "
            f"miniapp={user.mini_app_launch_count} bot={user.bot_start_count}",
            type_msg=TypeMsg.DEBUG,
        )
        return user

    async def get_user(self, tg_id: int) -> RemoteUser:
        user = await self.repository.get_by_id(ensure_tg_id(tg_id))
        if user is None:
            raise UserNotFound(f"user {tg_id} not found")
        return user

    async def list_users(self, limit: int = 100, offset: int = 0) -> list[RemoteUser]:
        """Пользователи, недавно появлявшиеся первыми."""
        if not 1 <= limit <= MAX_LIST_LIMIT:
            raise OutOfRange("limit", f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if offset < 0:
            raise OutOfRange("offset", "offset must be non-negative")
        return await self.repository.list_recent(limit, offset)
