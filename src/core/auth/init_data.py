# src/core/auth/init_data.py
"""
Проверка подписи Telegram Mini App initData.
https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import parse_qsl

from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator

from src.common.constants import MAX_TG_ID, WEB_APP_DATA_KEY
from src.common.errors import InvalidSignature, MalformedUser, MissingHash


class TelegramUser(BaseModel):
    """Поле user из initData после проверки подписи."""
    id: int
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    language_code: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def numeric_id(cls, v: Any) -> int:
        """id обязан быть положительным целым числом."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("id must be a number")
        if isinstance(v, float) and not v.is_integer():
            raise ValueError("id must be an integer")
        if not 0 < v <= MAX_TG_ID:
            raise ValueError("id must be a positive BIGINT")
        return int(v)

    @field_validator("username", "first_name", "last_name", "language_code", mode="before")
    @classmethod
    def as_string(cls, v: Any) -> str:
        return "" if v is None else str(v)


class VerifiedProfile(BaseModel):
    """Профиль пользователя, подтверждённый подписью платформы."""
    id: int
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    language_code: str = ""
    auth_date: datetime | None = None
    query_id: str | None = None
    start_param: str | None = None


def parse_init_data(init_data: str) -> dict[str, str]:
    """
    Разбирает URL-encoded initData в словарь.
    При повторе ключа побеждает последнее значение.
    """
    return dict(parse_qsl(init_data, keep_blank_values=True))


def build_check_string(fields: Mapping[str, str]) -> str:
    """
    Строка для проверки: пары key=value без hash,
    отсортированные по ключу (побайтово), через перевод строки.
    """
    pairs = sorted(
        ((k, v) for k, v in fields.items() if k != "hash"),
        key=lambda kv: kv[0].encode("utf-8"),
    )
    return "\n".join(f"{k}={v}" for k, v in pairs)


def compute_signature(check_string: str, bot_token: str) -> str:
    """
    HMAC-SHA256 подпись строки проверки.

    secret_key = HMAC_SHA256(key="WebAppData", msg=bot_token)
    signature  = hex(HMAC_SHA256(key=secret_key, msg=check_string))
    """
    secret_key = hmac.new(
        key=WEB_APP_DATA_KEY,
        msg=bot_token.encode(),
        digestmod=hashlib.sha256,
    ).digest()

    return hmac.new(
        key=secret_key,
        msg=check_string.encode(),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_init_data(init_data: str, bot_token: str) -> VerifiedProfile:
    """
    Проверяет подпись initData и возвращает профиль пользователя.

    Args:
        init_data: URL-encoded строка от Telegram.WebApp.initData
        bot_token: Общий секрет (токен бота)

    Returns:
        VerifiedProfile с данными пользователя

    Raises:
        MissingHash: В initData нет hash
        InvalidSignature: Подпись не совпала
        MalformedUser: user не JSON-объект или в нём нет числового id
    """
    fields = parse_init_data(init_data)

    received_hash = fields.pop("hash", None)
    if received_hash is None:
        raise MissingHash("hash is missing in initData")

    calculated_hash = compute_signature(build_check_string(fields), bot_token)

    # Сравнение за постоянное время
    if not hmac.compare_digest(calculated_hash.encode(), received_hash.encode()):
        raise InvalidSignature("bad initData")

    user = _parse_user(fields.get("user"))

    return VerifiedProfile(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        language_code=user.language_code,
        auth_date=_parse_auth_date(fields.get("auth_date")),
        query_id=fields.get("query_id"),
        start_param=fields.get("start_param"),
    )


def _parse_user(raw: str | None) -> TelegramUser:
    if not raw:
        raise MalformedUser("user is missing in initData")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedUser("user is not valid JSON") from e
    if not isinstance(payload, dict):
        raise MalformedUser("user must be a JSON object")
    try:
        return TelegramUser.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedUser("user.id is missing or invalid") from e


def _parse_auth_date(raw: str | None) -> datetime | None:
    # auth_date подписан вместе с остальными полями, но его свежесть не проверяется
    if not raw or not raw.isdigit():
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def extract_user_id(init_data: str) -> int | None:
    """
    Быстрое извлечение user_id из initData без проверки подписи.
    Только для логирования, не для авторизации.
    """
    try:
        payload = json.loads(parse_init_data(init_data).get("user", ""))
    except (json.JSONDecodeError, ValueError):
        return None
    user_id = payload.get("id") if isinstance(payload, dict) else None
    if isinstance(user_id, int) and not isinstance(user_id, bool):
        return user_id
    return None
