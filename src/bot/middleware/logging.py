# src/bot/middleware/logging.py
"""
Middleware для логирования входящих сообщений.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info


def describe_message(event: TelegramObject) -> str:
    """Команда или тип сообщения, без пользовательского текста."""
    if isinstance(event, Message):
        if event.text and event.text.startswith("/"):
            return event.text.split(maxsplit=1)[0]
        return "[text]" if event.text else "[no text]"
    return type(event).__name__


class LoggingMiddleware(BaseMiddleware):
    """Пишет в лог каждое сообщение и время его обработки."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = getattr(event, "from_user", None)
        user_id = user.id if user else None
        summary = describe_message(event)
        started = time.perf_counter()

        try:
            return await handler(event, data)
        except Exception as e:
            await log_error(
                f"Ошибка в хендлере {summary}: {e}",
                extra={"user_id": user_id},
                exc_info=True,
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            await log_info(
                f"[{summary}] user={user_id} {elapsed_ms:.1f}ms",
                type_msg=TypeMsg.DEBUG,
            )
