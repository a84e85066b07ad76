# src/bot/handlers/common.py
"""
Общие хендлеры.
Команда /start: отметка в реестре присутствия и одна строка ответа.
"""

from __future__ import annotations

import httpx
from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message

from src.bot.ledger_client import LedgerClient
from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info

router = Router(name="common")


@router.message(CommandStart())
async def cmd_start(message: Message, ledger_client: LedgerClient, start_text: str) -> None:
    """Обработчик команды /start."""
    user = message.from_user
    if user is not None:
        await log_info(
            f"Команда /start от пользователя {user.id} ({user.username})",
            type_msg=TypeMsg.DEBUG,
        )
        try:
            await ledger_client.ensure_bot_user(
                tg_id=user.id,
                username=user.username,
                first_name=user.first_name,
                last_name=user.last_name,
                language_code=user.language_code,
            )
        except httpx.HTTPError as e:
            # Пользователь об этом не узнаёт, ответ всегда один
            await log_error(
                f"Не удалось отметить /start в реестре: {e}",
                extra={"user_id": user.id},
            )

    await message.answer(start_text)
