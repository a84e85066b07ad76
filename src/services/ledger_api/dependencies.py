# src/services/ledger_api/dependencies.py
"""
Зависимости FastAPI.
Всё берётся из app.state, куда lifespan кладёт подключённые объекты.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, Header, Request

from src.common.constants import BOT_TOKEN_HEADER
from src.common.errors import BotTokenRejected
from src.core.catalog.service import CatalogService
from src.core.presence.service import PresenceLedger
from src.infra.database import DatabaseManager


def get_database(request: Request) -> Optional[DatabaseManager]:
    """None, пока lifespan не подключил БД."""
    return getattr(request.app.state, "db", None)


def get_presence_ledger(request: Request) -> PresenceLedger:
    return request.app.state.presence_ledger


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_bot_secret(request: Request) -> str:
    """Общий секрет бота; он же ключ подписи initData."""
    return request.app.state.bot_token


async def require_bot_token(
    x_bot_token: Optional[str] = Header(None, alias=BOT_TOKEN_HEADER),
    secret: str = Depends(get_bot_secret),
) -> None:
    """
    Пускает только вызовы с верным заголовком x-bot-token.
    Сравнение за постоянное время.

    Raises:
        BotTokenRejected: Заголовок отсутствует или не совпал
    """
    if not x_bot_token or not secret:
        raise BotTokenRejected("missing bot token")
    if not hmac.compare_digest(x_bot_token.encode("utf-8"), secret.encode("utf-8")):
        raise BotTokenRejected("bot token mismatch")
