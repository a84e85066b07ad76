# src/bot/__init__.py
"""
Telegram Bot (aiogram 3.x): /start и отметка в реестре присутствия.
"""

from src.bot.app import create_bot, create_dispatcher, run_polling
from src.bot.ledger_client import LedgerClient

__all__ = [
    "create_bot",
    "create_dispatcher",
    "run_polling",
    "LedgerClient",
]
