# src/bot/ledger_client.py
"""
HTTP-клиент бота к Ledger API.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from src.common.constants import BOT_TOKEN_HEADER

ENSURE_BOT_PATH = "/api/users/ensure-bot"


class LedgerClient:
    """Сообщает Ledger API о событиях бота, подтверждая их общим секретом."""

    def __init__(
        self,
        base_url: str,
        bot_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={BOT_TOKEN_HEADER: bot_token},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def _post(self, path: str, json: Optional[dict[str, Any]] = None) -> Any:
        response = await self.client.post(path, json=json)
        response.raise_for_status()
        return response.json()

    async def ensure_bot_user(
        self,
        tg_id: int,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        language_code: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Фиксирует /start пользователя в реестре.

        Returns:
            Запись пользователя из ответа (camelCase)

        Raises:
            httpx.HTTPStatusError: Ответ не 2xx
            httpx.HTTPError: Сетевая ошибка
        """
        data = await self._post(
            ENSURE_BOT_PATH,
            json={
                "tgId": tg_id,
                "username": username or "",
                "firstName": first_name or "",
                "lastName": last_name or "",
                "languageCode": language_code or "",
            },
        )
        return data["user"]
