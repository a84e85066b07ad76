# src/common/errors.py
"""
Иерархия ошибок ядра.

Каждая ошибка несёт машинный код (code) и HTTP-статус, которым её отдаёт API.
Ошибки аутентификации и валидации возникают до любого обращения к БД.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Базовая ошибка ядра."""

    code: str = "internal_error"
    http_status: int = 500

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details or {}

    def to_response(self) -> dict[str, Any]:
        """Тело ответа API."""
        body: dict[str, Any] = {"ok": False, "error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# === АУТЕНТИФИКАЦИЯ ===

class AuthError(LedgerError):
    """Подпись или учётные данные не приняты."""
    code = "unauthorized"
    http_status = 401


class MissingHash(AuthError):
    """В initData нет поля hash."""
    code = "missing_hash"


class InvalidSignature(AuthError):
    """Подпись initData не совпала."""
    code = "invalid_signature"


class MalformedUser(AuthError):
    """Подпись верна, но поле user не разбирается или в нём нет id."""
    code = "malformed_user"
    http_status = 400


class BotTokenRejected(AuthError):
    """Заголовок x-bot-token отсутствует или не совпал с секретом."""
    code = "unauthorized"


# === ВАЛИДАЦИЯ ===

class ValidationError(LedgerError):
    """Некорректные входные данные."""
    code = "validation_error"
    http_status = 400


class MissingField(ValidationError):
    code = "missing_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required", details={"field": field})
        self.field = field


class OutOfRange(ValidationError):
    code = "out_of_range"

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} is out of range", details={"field": field})
        self.field = field


# === ЧТЕНИЕ ===

class NotFoundError(LedgerError):
    code = "not_found"
    http_status = 404


class UserNotFound(NotFoundError):
    code = "user_not_found"


class CardNotFound(NotFoundError):
    code = "card_not_found"


# === КАТАЛОГ ===

class ConflictError(LedgerError):
    code = "conflict"
    http_status = 409


class DuplicateIdentifier(ConflictError):
    """
    Ограничение уникальности отклонило KID при вставке.
    Безопасно повторить, запросив новый KID.
    """
    code = "duplicate_identifier"


class AllocationExhausted(LedgerError):
    """Все попытки сгенерировать свободный KID совпали с существующими."""
    code = "allocation_exhausted"
    http_status = 500


# === ХРАНИЛИЩЕ ===

class StoreError(LedgerError):
    code = "store_error"
    http_status = 503


class StoreUnavailable(StoreError):
    """БД недоступна или не ответила за отведённое время."""
    code = "store_unavailable"

    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"

    def __init__(self, reason: str = UNAVAILABLE, message: str = "") -> None:
        super().__init__(message or f"datastore {reason}", details={"reason": reason})
        self.reason = reason
