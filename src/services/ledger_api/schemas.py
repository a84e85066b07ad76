# src/services/ledger_api/schemas.py
"""
Тела запросов Ledger API.
Поля в camelCase, как их шлют Mini App и бот.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.common.constants import MAX_TG_ID
from src.common.errors import MissingField, OutOfRange
from src.core.presence.models import UserProfile

_DIGITS_RE = re.compile(r"^[0-9]+$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnsureRequest(CamelModel):
    """POST /api/users/ensure."""
    init_data: Optional[str] = Field(None, description="Сырая строка initData из Telegram.WebApp")


class EnsureBotRequest(CamelModel):
    """POST /api/users/ensure-bot."""
    tg_id: Any = Field(None, description="Telegram ID: число или строка из цифр")
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language_code: Optional[str] = None

    def profile(self) -> UserProfile:
        return UserProfile(
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            language_code=self.language_code,
        )


def parse_tg_id(value: Any, field: str = "tgId") -> int:
    """
    Приводит tgId из тела запроса к положительному int.

    Принимает целые числа и строки из цифр 0-9. bool, дроби, ноль,
    отрицательные значения и числа больше BIGINT отклоняются.

    Raises:
        MissingField: Значение не передано
        OutOfRange: Значение не положительное целое
    """
    if value is None or value == "":
        raise MissingField(field)
    if isinstance(value, bool):
        raise OutOfRange(field, f"{field} must be a positive integer")

    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str):
        value = value.strip()
        if not _DIGITS_RE.match(value):
            raise OutOfRange(field, f"{field} must be a positive integer")
        value = int(value)

    if not isinstance(value, int) or not 0 < value <= MAX_TG_ID:
        raise OutOfRange(field, f"{field} must be a positive integer")
    return value
