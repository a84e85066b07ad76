# src/bot/handlers/__init__.py
"""
Хендлеры Telegram бота.
"""

from aiogram import Dispatcher

from src.bot.handlers.common import router as common_router


def register_routers(dp: Dispatcher) -> None:
    """
    Регистрирует все роутеры в диспетчере.

    Args:
        dp: Диспетчер
    """
    dp.include_router(common_router)


__all__ = [
    "register_routers",
    "common_router",
]
