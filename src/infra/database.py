# src/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений, таймауты на каждый запрос и перевод сбоев в StoreUnavailable.

Повторные попытки есть только при установке соединения на старте процесса.
Запросы не повторяются: решение о повторе принимает вызывающая сторона.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncGenerator, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool, Record

from src.common.constants import TypeMsg
from src.common.errors import StoreUnavailable
from src.common.logger import log_error, log_info
from src.infra.upsert import Upsert

if TYPE_CHECKING:
    from src.config.loader import DatabaseSettings

T = TypeVar("T")

# Произвольный идентификатор advisory lock для применения схемы
SCHEMA_LOCK_ID = 724_117_001

CONNECTION_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    ConnectionError,
    OSError,
)


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Декоратор для ретрая при ошибках подключения.
    Применяется только к установке соединения.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except CONNECTION_ERRORS as e:
                    last_error = e
                    if attempt < max_attempts:
                        await log_info(
                            f"Ошибка подключения к БД (попытка {attempt}/{max_attempts}): {e}",
                            type_msg=TypeMsg.WARNING,
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        await log_error(f"Не удалось подключиться к БД после {max_attempts} попыток: {e}")

            raise last_error  # type: ignore[misc]

        return wrapper  # type: ignore[return-value]

    return decorator


class DatabaseManager:
    """
    Пул соединений к PostgreSQL.

    Экземпляр создаётся один раз при старте процесса и передаётся
    компонентам явно.
    """

    def __init__(self, command_timeout: float = 5.0) -> None:
        """
        Args:
            command_timeout: Таймаут запроса и ожидания соединения (секунды)
        """
        self._pool: Pool | None = None
        self.command_timeout = command_timeout

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise RuntimeError("Пул соединений не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        attempts: int = 3,
        delay: float = 1.0,
    ) -> None:
        """
        Создаёт пул соединений к PostgreSQL.

        Args:
            dsn: DSN строка подключения
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            attempts: Количество попыток подключения
            delay: Базовая задержка между попытками
        """
        if self._pool is not None:
            return

        @retry_on_connection_error(max_attempts=attempts, delay=delay)
        async def _create() -> Pool:
            return await asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=self.command_timeout,
            )

        await log_info("Подключение к PostgreSQL...", type_msg=TypeMsg.INFO)
        self._pool = await _create()
        await log_info("Подключение к PostgreSQL установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Соединение с PostgreSQL закрыто", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Соединение из пула. Ожидание ограничено command_timeout,
        сбои подключения и таймауты переводятся в StoreUnavailable.

        Example:
            async with db.acquire() as conn:
                row = await conn.fetchrow("SELECT ...", timeout=db.command_timeout)
        """
        try:
            async with self.pool.acquire(timeout=self.command_timeout) as connection:
                yield connection
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise StoreUnavailable(StoreUnavailable.TIMEOUT) from e
        except ValueError:
            # Ошибка кодирования аргументов (asyncpg DataError наследует
            # InterfaceError и ValueError): вход неверен, соединение цело
            raise
        except CONNECTION_ERRORS as e:
            raise StoreUnavailable(StoreUnavailable.UNAVAILABLE, str(e)) from e

    async def execute(self, query: str, *args: Any) -> str:
        """Выполняет SQL запрос без возврата данных."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args, timeout=self.command_timeout)

    async def fetch(self, query: str, *args: Any) -> list[Record]:
        """Выполняет SQL запрос и возвращает все строки."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args, timeout=self.command_timeout)

    async def fetchrow(self, query: str, *args: Any) -> Record | None:
        """Выполняет SQL запрос и возвращает одну строку."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args, timeout=self.command_timeout)

    async def fetchval(self, query: str, *args: Any, column: int = 0) -> Any:
        """Выполняет SQL запрос и возвращает одно значение."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column, timeout=self.command_timeout)

    async def upsert(self, statement: Upsert) -> Record:
        """
        Выполняет атомарный upsert одним оператором.

        Returns:
            Строка после вставки/обновления
        """
        query, args = statement.compile()
        record = await self.fetchrow(query, *args)
        if record is None:
            # ON CONFLICT DO UPDATE всегда возвращает строку
            raise RuntimeError(f"Upsert в {statement.table} не вернул строку")
        return record

    async def apply_schema(self, schema_path: Path) -> None:
        """
        Применяет SQL-схему под advisory lock, чтобы параллельно
        стартующие процессы не мешали друг другу.
        """
        schema_sql = schema_path.read_text(encoding="utf-8")

        await log_info("Применение схемы БД...", type_msg=TypeMsg.INFO)
        async with self.acquire() as conn:
            async with conn.transaction():
                await conn.execute("SELECT pg_advisory_xact_lock($1)", SCHEMA_LOCK_ID)
                await conn.execute(schema_sql)
        await log_info("Схема БД успешно применена", type_msg=TypeMsg.INFO)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к БД.

        Returns:
            True если подключение работает
        """
        try:
            return await self.fetchval("SELECT 1") == 1
        except (StoreUnavailable, RuntimeError) as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False


def get_schema_path() -> Path:
    """Путь к migrations/init.sql."""
    from src.config.loader import get_project_root

    return get_project_root() / "migrations" / "init.sql"


async def open_database(db_settings: "DatabaseSettings", apply_schema: bool = True) -> DatabaseManager:
    """
    Создаёт и подключает DatabaseManager по настройкам.

    Args:
        db_settings: Секция database из конфига
        apply_schema: Применить migrations/init.sql

    Returns:
        Подключённый DatabaseManager
    """
    db = DatabaseManager(command_timeout=db_settings.DB_COMMAND_TIMEOUT)
    await db.connect(
        dsn=db_settings.dsn,
        min_size=db_settings.DB_MIN_POOL_SIZE,
        max_size=db_settings.DB_MAX_POOL_SIZE,
        attempts=db_settings.DB_CONNECT_ATTEMPTS,
        delay=db_settings.DB_CONNECT_DELAY,
    )
    await log_info(
        f"PostgreSQL подключён: {db_settings.DB_HOST}:{db_settings.DB_PORT}/{db_settings.DB_NAME}",
        type_msg=TypeMsg.INFO,
    )
    if apply_schema:
        await db.apply_schema(get_schema_path())
    return db
