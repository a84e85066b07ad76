# src/services/ledger_api/routes.py
"""
HTTP-эндпоинты реестра присутствия и каталога карт.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from src.common.constants import Channel
from src.common.errors import AuthError, MissingField
from src.common.logger import log_warning
from src.core.auth.init_data import extract_user_id, verify_init_data
from src.core.catalog.models import NewCard
from src.core.catalog.service import CatalogService
from src.core.presence.models import UserProfile
from src.core.presence.service import PresenceLedger
from src.services.ledger_api.dependencies import (
    get_bot_secret,
    get_catalog_service,
    get_presence_ledger,
    require_bot_token,
)
from src.services.ledger_api.schemas import EnsureBotRequest, EnsureRequest, parse_tg_id

router = APIRouter(prefix="/api", tags=["ledger"])


# === ПОЛЬЗОВАТЕЛИ ===

@router.post("/users/ensure")
async def ensure_miniapp_user(
    body: Optional[EnsureRequest] = None,
    ledger: PresenceLedger = Depends(get_presence_ledger),
    bot_token: str = Depends(get_bot_secret),
) -> dict[str, Any]:
    """
    Запуск Mini App: проверяет подпись initData и фиксирует канал MINIAPP.
    """
    if body is None or not body.init_data:
        raise MissingField("initData")

    try:
        profile = verify_init_data(body.init_data, bot_token)
    except AuthError as e:
        # id без проверки подписи, только для контекста в логе
        await log_warning(
            f"initData отклонён: {e.code}",
            extra={"claimed_user_id": extract_user_id(body.init_data)},
        )
        raise

    user = await ledger.upsert(
        Channel.MINIAPP,
        profile.id,
        UserProfile(
            username=profile.username,
            first_name=profile.first_name,
            last_name=profile.last_name,
            language_code=profile.language_code,
        ),
    )
    return {"ok": True, "user": user.to_api(), "meta": {"source": Channel.MINIAPP.value}}


@router.post("/users/ensure-bot", dependencies=[Depends(require_bot_token)])
async def ensure_bot_user(
    body: Optional[EnsureBotRequest] = None,
    ledger: PresenceLedger = Depends(get_presence_ledger),
) -> dict[str, Any]:
    """/start в боте: фиксирует канал BOT."""
    if body is None:
        raise MissingField("tgId")

    tg_id = parse_tg_id(body.tg_id)
    user = await ledger.upsert(Channel.BOT, tg_id, body.profile())
    return {"ok": True, "user": user.to_api(), "meta": {"source": Channel.BOT.value}}


@router.get("/users", dependencies=[Depends(require_bot_token)])
async def list_users(
    limit: int = Query(100),
    offset: int = Query(0),
    ledger: PresenceLedger = Depends(get_presence_ledger),
) -> dict[str, Any]:
    users = await ledger.list_users(limit=limit, offset=offset)
    return {
        "ok": True,
        "items": [user.to_api() for user in users],
        "limit": limit,
        "offset": offset,
    }


@router.get("/users/{tg_id}", dependencies=[Depends(require_bot_token)])
async def get_user(
    tg_id: int,
    ledger: PresenceLedger = Depends(get_presence_ledger),
) -> dict[str, Any]:
    user = await ledger.get_user(tg_id)
    return {"ok": True, "user": user.to_api()}


# === КАРТЫ ===

@router.post("/cards", dependencies=[Depends(require_bot_token)])
async def create_card(
    body: NewCard,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    card = await catalog.create_card(body)
    return {"ok": True, "card": card.to_api()}


@router.get("/cards/{kid}")
async def get_card(
    kid: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    card = await catalog.get_card(kid)
    return {"ok": True, "card": card.to_api()}
