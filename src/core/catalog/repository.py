# src/core/catalog/repository.py
"""
Репозиторий карт каталога.
"""

from __future__ import annotations

from typing import Optional

import asyncpg

from src.common.errors import DuplicateIdentifier
from src.core.catalog.models import Card, NewCard
from src.infra.database import DatabaseManager

KID_UNIQUE_CONSTRAINT = "cards_kid_key"

CARD_COLUMNS = (
    "kid",
    "card_no",
    "issuer",
    "card_type",
    "series",
    "collection_name",
    "owner_tg_id",
    "utc_date",
    "utc_time",
    "created_at",
)


class CardRepository:
    """Доступ к таблице cards."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def kid_exists(self, kid: str) -> bool:
        """Есть ли карта с таким KID."""
        return bool(await self._db.fetchval("SELECT EXISTS (SELECT 1 FROM cards WHERE kid = $1)", kid))

    async def insert(self, kid: str, card: NewCard, utc_date: str, utc_time: str) -> Card:
        """
        Сохраняет новую карту.

        Raises:
            DuplicateIdentifier: KID уже занят (ограничение cards_kid_key)
        """
        query = f"""
            INSERT INTO cards (
                kid, card_no, issuer, card_type, series,
                collection_name, owner_tg_id, utc_date, utc_time
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING {', '.join(CARD_COLUMNS)}
        """
        try:
            record = await self._db.fetchrow(
                query,
                kid,
                card.card_no,
                card.issuer,
                card.card_type,
                card.series,
                card.collection_name,
                card.owner_tg_id,
                utc_date,
                utc_time,
            )
        except asyncpg.UniqueViolationError as e:
            if e.constraint_name == KID_UNIQUE_CONSTRAINT:
                raise DuplicateIdentifier(f"KID {kid} already exists") from e
            raise
        return Card.model_validate(dict(record))

    async def get_by_kid(self, kid: str) -> Optional[Card]:
        """Получает карту по KID."""
        record = await self._db.fetchrow(
            f"SELECT {', '.join(CARD_COLUMNS)} FROM cards WHERE kid = $1",
            kid,
        )
        if record is None:
            return None
        return Card.model_validate(dict(record))
