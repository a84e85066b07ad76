# src/services/ledger_api/app.py
"""
Ledger API: реестр присутствия пользователей и каталог карт.

Подключение к БД создаётся один раз в lifespan и кладётся в app.state,
эндпоинты получают его через Depends.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.common.constants import BOT_TOKEN_HEADER, TypeMsg
from src.common.logger import log_info, setup_logging
from src.config.loader import Settings, get_settings
from src.core.catalog.allocator import KidAllocator
from src.core.catalog.repository import CardRepository
from src.core.catalog.service import CatalogService
from src.core.presence.repository import PresenceRepository
from src.core.presence.service import PresenceLedger
from src.infra.database import DatabaseManager, open_database
from src.services.ledger_api.dependencies import get_database
from src.services.ledger_api.error_handlers import register_error_handlers
from src.services.ledger_api.routes import router

SERVICE_NAME = "ledger_api"


def attach_services(app: FastAPI, db: DatabaseManager, settings: Settings) -> None:
    """Собирает сервисы поверх подключённой БД и кладёт их в app.state."""
    card_repository = CardRepository(db)

    app.state.db = db
    app.state.bot_token = settings.telegram.BOT_TOKEN
    app.state.presence_ledger = PresenceLedger(PresenceRepository(db))
    app.state.catalog_service = CatalogService(
        card_repository,
        KidAllocator(card_repository, max_attempts=settings.catalog.KID_MAX_ATTEMPTS),
        issuers=settings.catalog.ISSUERS,
        card_types=settings.catalog.CARD_TYPES,
        series=settings.catalog.SERIES,
        persist_attempts=settings.catalog.KID_PERSIST_ATTEMPTS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging()

    if not settings.telegram.BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN не задан, Ledger API не может проверять подписи")

    await log_info("Запуск Ledger API...", type_msg=TypeMsg.INFO)
    db = await open_database(settings.database)
    attach_services(app, db, settings)

    try:
        yield
    finally:
        await log_info("Остановка Ledger API...", type_msg=TypeMsg.INFO)
        await db.disconnect()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Создаёт приложение.

    Args:
        settings: Настройки (по умолчанию из config.json и окружения)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Pinka Ledger API",
        description="Presence ledger and card catalog",
        version=settings.system.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type", BOT_TOKEN_HEADER],
    )

    app.include_router(router)
    register_error_handlers(app)

    @app.get("/api/health")
    async def health_check(db: Optional[DatabaseManager] = Depends(get_database)) -> dict[str, Any]:
        database_ok = db is not None and await db.health_check()
        return {
            "ok": True,
            "service": SERVICE_NAME,
            "version": settings.system.VERSION,
            "database": "connected" if database_ok else "disconnected",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "src.services.ledger_api.app:app",
        host=_settings.deployment.API_HOST,
        port=_settings.deployment.API_PORT,
        reload=_settings.system.DEBUG,
    )
