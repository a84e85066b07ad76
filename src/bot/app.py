# src/bot/app.py
"""
Инициализация Telegram бота.
Создание Bot и Dispatcher, запуск polling.
"""

from __future__ import annotations

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from src.bot.ledger_client import LedgerClient
from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.config.loader import Settings


def create_bot(token: str) -> Bot:
    """
    Создаёт экземпляр бота.

    Args:
        token: Токен бота

    Returns:
        Экземпляр Bot
    """
    if not token:
        raise ValueError("BOT_TOKEN не задан")

    return Bot(
        token=token,
        default=DefaultBotProperties(
            parse_mode=ParseMode.HTML,
        ),
    )


def create_dispatcher(ledger_client: LedgerClient, start_text: str) -> Dispatcher:
    """
    Создаёт диспетчер.
    ledger_client и start_text попадают в хендлеры по имени аргумента.
    """
    dp = Dispatcher(ledger_client=ledger_client, start_text=start_text)

    from src.bot.handlers import register_routers
    register_routers(dp)

    from src.bot.middleware import register_middleware
    register_middleware(dp)

    return dp


async def run_polling(settings: Settings) -> None:
    """Запускает бота в режиме polling до остановки."""
    bot = create_bot(settings.telegram.BOT_TOKEN)
    ledger_client = LedgerClient(
        base_url=settings.deployment.LEDGER_API_URL,
        bot_token=settings.telegram.BOT_TOKEN,
    )
    dp = create_dispatcher(ledger_client, settings.telegram.BOT_START_TEXT)

    await log_info(
        f"Bot запущен в режиме polling, Ledger API: {settings.deployment.LEDGER_API_URL}",
        type_msg=TypeMsg.INFO,
    )
    try:
        await dp.start_polling(bot)
    finally:
        await ledger_client.close()
        await bot.session.close()
        await log_info("Bot остановлен", type_msg=TypeMsg.INFO)
