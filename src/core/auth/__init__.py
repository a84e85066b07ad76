# src/core/auth/__init__.py
"""
Аутентификация входящих запросов: подпись Mini App initData.
"""

from src.core.auth.init_data import (
    TelegramUser,
    VerifiedProfile,
    verify_init_data,
    extract_user_id,
)

__all__ = [
    "TelegramUser",
    "VerifiedProfile",
    "verify_init_data",
    "extract_user_id",
]
