# src/core/catalog/models.py
"""
Модели каталога карт.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class NewCard(BaseModel):
    """Ручные поля новой карты (KID и дату/время присваивает система)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    card_no: str = Field("", description="Номер карты (декор)")
    issuer: str = Field(..., description="Эмитент")
    card_type: str = Field(..., description="Тип")
    series: str = Field(..., description="Серия")
    collection_name: str = Field(..., description="Коллекция")
    owner_tg_id: int = Field(..., description="Владелец (Telegram ID)")

    @field_validator("card_no", "issuer", "card_type", "series", "collection_name", mode="before")
    @classmethod
    def as_string(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("collection_name")
    @classmethod
    def strip_collection(cls, v: str) -> str:
        return v.strip()


class Card(BaseModel):
    """Карта каталога. kid - постоянный публичный идентификатор."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    kid: str = Field(..., min_length=32, max_length=32, description="KID, 32 hex-символа")
    card_no: str = ""
    issuer: str
    card_type: str
    series: str
    collection_name: str
    owner_tg_id: int
    utc_date: str = Field(..., description="YYYY-MM-DD (UTC)")
    utc_time: str = Field(..., description="HH:MM:SS (UTC)")
    created_at: datetime

    def to_api(self) -> dict[str, Any]:
        """Сериализация для ответа API (camelCase)."""
        return self.model_dump(mode="json", by_alias=True)
