# src/core/catalog/allocator.py
"""
Выдача KID - уникального публичного идентификатора карты.

Проверка «нет ли такого KID в БД» только снижает вероятность повтора.
Гарантию даёт ограничение UNIQUE на cards.kid: гонку двух параллельных
выдач, прошедших проверку, отклонит вставка (DuplicateIdentifier).
"""

from __future__ import annotations

import secrets
from typing import Callable, Protocol

from src.common.constants import KID_BYTES
from src.common.errors import AllocationExhausted
from src.common.logger import log_warning

DEFAULT_MAX_ATTEMPTS = 6


class KidProbe(Protocol):
    async def kid_exists(self, kid: str) -> bool: ...


def generate_kid() -> str:
    """128 бит из криптографического ГСЧ, 32 hex-символа в нижнем регистре."""
    return secrets.token_hex(KID_BYTES)


class KidAllocator:
    """Генератор KID с проверкой по хранилищу."""

    def __init__(
        self,
        probe: KidProbe,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        token_factory: Callable[[], str] = generate_kid,
    ) -> None:
        """
        Args:
            probe: Хранилище с методом kid_exists
            max_attempts: Сколько кандидатов проверить до отказа
            token_factory: Источник кандидатов
        """
        if max_attempts < 1:
            raise ValueError("max_attempts должен быть >= 1")
        self._probe = probe
        self._max_attempts = max_attempts
        self._token_factory = token_factory

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def allocate(self) -> str:
        """
        Возвращает KID, которого не было в хранилище в момент проверки.

        Raises:
            AllocationExhausted: Все кандидаты оказались заняты
            StoreUnavailable: БД недоступна или не ответила вовремя
        """
        for attempt in range(1, self._max_attempts + 1):
            kid = self._token_factory()
            if not await self._probe.kid_exists(kid):
                return kid
            await log_warning(f"KID уже занят (попытка {attempt}/{self._max_attempts})")

        raise AllocationExhausted(f"no free KID after {self._max_attempts} attempts")
