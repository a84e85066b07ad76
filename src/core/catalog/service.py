# src/core/catalog/service.py
"""
Сервис каталога: создание карты с выдачей KID и чтение по KID.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable

from src.common.constants import MAX_TG_ID, TypeMsg
from src.common.errors import CardNotFound, DuplicateIdentifier, MissingField, OutOfRange
from src.common.logger import log_info, log_warning
from src.core.catalog.allocator import KidAllocator
from src.core.catalog.models import Card, NewCard
from src.core.catalog.repository import CardRepository

DEFAULT_PERSIST_ATTEMPTS = 3

_KID_RE = re.compile(r"^[0-9a-f]{32}$")


def utc_date_time_parts(moment: datetime) -> tuple[str, str]:
    """('YYYY-MM-DD', 'HH:MM:SS') в UTC."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d"), moment.strftime("%H:%M:%S")


class CatalogService:
    """Каталог карт."""

    def __init__(
        self,
        repository: CardRepository,
        allocator: KidAllocator,
        *,
        issuers: Iterable[str],
        card_types: Iterable[str],
        series: Iterable[str],
        persist_attempts: int = DEFAULT_PERSIST_ATTEMPTS,
    ) -> None:
        self.repository = repository
        self.allocator = allocator
        self.issuers = tuple(issuers)
        self.card_types = tuple(card_types)
        self.series = tuple(series)
        self.persist_attempts = max(1, persist_attempts)

    def validate(self, card: NewCard) -> None:
        """Проверки до выдачи KID: ничего не пишется, если данные плохие."""
        if card.issuer not in self.issuers:
            raise OutOfRange("issuer", "bad issuer")
        if card.card_type not in self.card_types:
            raise OutOfRange("cardType", "bad type")
        if card.series not in self.series:
            raise OutOfRange("series", "bad series")
        if not card.collection_name:
            raise MissingField("collectionName")
        if not 0 < card.owner_tg_id <= MAX_TG_ID:
            raise OutOfRange("ownerTgId", "bad ownerTgId")

    async def create_card(self, card: NewCard) -> Card:
        """
        Создаёт карту: проверка, выдача KID, вставка.

        Если вставку отклонило ограничение уникальности KID, выдаётся новый
        KID и вставка повторяется (не больше persist_attempts раз).

        Raises:
            ValidationError: Некорректные поля
            AllocationExhausted: Не удалось подобрать свободный KID
            DuplicateIdentifier: Все вставки отклонены ограничением
        """
        self.validate(card)
        utc_date, utc_time = utc_date_time_parts(datetime.now(timezone.utc))

        last_error = DuplicateIdentifier("KID rejected by unique constraint")
        for attempt in range(1, self.persist_attempts + 1):
            kid = await self.allocator.allocate()
            try:
                created = await self.repository.insert(kid, card, utc_date, utc_time)
            except DuplicateIdentifier as e:
                last_error = e
                await log_warning(f"KID отклонён ограничением уникальности (попытка {attempt}/{self.persist_attempts})")
                continue

            await log_info(f"Создана карта kid={created.kid} owner={created.owner_tg_id}", type_msg=TypeMsg.INFO)
            return created

        raise last_error

    async def get_card(self, kid: str) -> Card:
        if not _KID_RE.match(kid):
            raise CardNotFound(f"card {kid} not found")
        card = await self.repository.get_by_kid(kid)
        if card is None:
            raise CardNotFound(f"card {kid} not found")
        return card
