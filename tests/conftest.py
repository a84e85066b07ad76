# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock
from urllib.parse import urlencode

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("BOT_TOKEN", "test_bot_token")
os.environ.setdefault("DB_PASSWORD", "test_password")

from src.common.errors import DuplicateIdentifier  # noqa: E402
from src.core.catalog.models import Card, NewCard  # noqa: E402
from src.infra.upsert import SqlNow, Upsert  # noqa: E402

TEST_BOT_TOKEN = "test_bot_token"


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "комментарий",
        "PROJECT_NAME": "pinka_core_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "COMPONENT_MODE": "bot",
        "API_HOST": "127.0.0.1",
        "API_PORT": 10100,
        "LEDGER_API_URL": "http://ledger.test/",
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_MAX_BYTES": 1024,
        "BOT_TOKEN": "",
        "BOT_START_TEXT": "Открой мини-приложение",
        "DB_HOST": "db.test",
        "DB_PORT": 5433,
        "DB_NAME": "pinka_test",
        "DB_USER": "tester",
        "DB_PASSWORD": "",
        "DB_MIN_POOL_SIZE": 1,
        "DB_MAX_POOL_SIZE": 3,
        "DB_COMMAND_TIMEOUT": 2,
        "DB_CONNECT_ATTEMPTS": 2,
        "DB_CONNECT_DELAY": 0.1,
        "KID_MAX_ATTEMPTS": 4,
        "KID_PERSIST_ATTEMPTS": 2,
        "ISSUERS": ["Pinka Plus", "Pinka Lite"],
        "CARD_TYPES": ["Personality"],
        "SERIES": ["Creme", "Noir"],
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2), encoding="utf-8")
    return config_file


# =============================================================================
# ПОДПИСАННЫЙ initData
# =============================================================================

def sign_init_data(fields: dict[str, str], bot_token: str) -> str:
    """Подпись по алгоритму Telegram, независимо от проверяемого кода."""
    check_string = "\n".join(f"{k}={fields[k]}" for k in sorted(fields))
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(secret, check_string.encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def make_init_data() -> Callable[..., str]:
    """
    Фабрика initData.

    make_init_data(user={"id": 1}) -> подписанная строка
    user может быть строкой (для некорректного JSON).
    """

    def _make(
        user: dict[str, Any] | str | None = None,
        bot_token: str = TEST_BOT_TOKEN,
        with_hash: bool = True,
        **extra: str,
    ) -> str:
        fields: dict[str, str] = {"auth_date": "1700000000", "query_id": "AAH-test"}
        if user is not None:
            fields["user"] = user if isinstance(user, str) else json.dumps(user, separators=(",", ":"))
        fields.update(extra)
        if with_hash:
            fields["hash"] = sign_init_data(fields, bot_token)
        return urlencode(fields)

    return _make


# =============================================================================
# ХРАНИЛИЩЕ В ПАМЯТИ
# =============================================================================

def _remote_user_defaults(now: datetime) -> dict[str, Any]:
    return {
        "username": "",
        "first_name": "",
        "last_name": "",
        "language_code": "",
        "created_at": now,
        "last_seen_at": now,
        "mini_app_launch_count": 0,
        "bot_start_count": 0,
        "bot_started_at": None,
    }


class FakeDatabase:
    """
    DatabaseManager в памяти.

    upsert применяет оператор так же, как PostgreSQL применяет
    INSERT ... ON CONFLICT: целиком, без чередования с другими вызовами.
    Перед применением вызов уступает цикл событий, поэтому
    параллельные задачи действительно перемешиваются.
    """

    TABLE_DEFAULTS: dict[str, Callable[[datetime], dict[str, Any]]] = {
        "remote_users": _remote_user_defaults,
    }

    def __init__(self) -> None:
        self.tables: dict[str, dict[Any, dict[str, Any]]] = {}
        self.upserts: list[Upsert] = []

    def rows(self, table: str) -> dict[Any, dict[str, Any]]:
        return self.tables.setdefault(table, {})

    async def upsert(self, statement: Upsert) -> dict[str, Any]:
        statement.compile()
        await asyncio.sleep(0)

        # Дальше нет await: изменение применяется атомарно
        self.upserts.append(statement)
        now = datetime.now(timezone.utc)

        def resolve(value: Any) -> Any:
            return now if isinstance(value, SqlNow) else value

        table = self.rows(statement.table)
        row = table.get(statement.key_value)
        if row is None:
            defaults = self.TABLE_DEFAULTS.get(statement.table, lambda _: {})(now)
            row = {**defaults, statement.key: statement.key_value}
            row.update({f: resolve(v) for f, v in statement.on_insert.items()})
            row.update({f: resolve(v) for f, v in statement.assignments.items()})
            row.update(statement.increments)
            table[statement.key_value] = row
        else:
            row.update({f: resolve(v) for f, v in statement.assignments.items()})
            for field, by in statement.increments.items():
                row[field] += by
        return dict(row)

    async def fetchrow(self, query: str, *args: Any) -> dict[str, Any] | None:
        if "FROM remote_users WHERE tg_id" in query:
            row = self.rows("remote_users").get(args[0])
            return dict(row) if row else None
        return None

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        if "FROM remote_users" in query and "ORDER BY last_seen_at DESC" in query:
            limit, offset = args
            ordered = sorted(
                self.rows("remote_users").values(),
                key=lambda r: (-r["last_seen_at"].timestamp(), r["tg_id"]),
            )
            return [dict(r) for r in ordered[offset:offset + limit]]
        return []

    async def fetchval(self, query: str, *args: Any) -> Any:
        return None

    async def health_check(self) -> bool:
        return True


class FakeCardRepository:
    """
    Репозиторий карт в памяти с уникальностью KID,
    как у ограничения cards_kid_key.
    """

    def __init__(self) -> None:
        self.cards: dict[str, Card] = {}
        self.insert_calls = 0

    async def kid_exists(self, kid: str) -> bool:
        await asyncio.sleep(0)
        return kid in self.cards

    async def insert(self, kid: str, card: NewCard, utc_date: str, utc_time: str) -> Card:
        await asyncio.sleep(0)
        self.insert_calls += 1
        if kid in self.cards:
            raise DuplicateIdentifier(f"KID {kid} already exists")
        created = Card(
            kid=kid,
            card_no=card.card_no,
            issuer=card.issuer,
            card_type=card.card_type,
            series=card.series,
            collection_name=card.collection_name,
            owner_tg_id=card.owner_tg_id,
            utc_date=utc_date,
            utc_time=utc_time,
            created_at=datetime.now(timezone.utc),
        )
        self.cards[kid] = created
        return created

    async def get_by_kid(self, kid: str) -> Card | None:
        return self.cards.get(kid)


@pytest.fixture
def fake_db() -> FakeDatabase:
    """Хранилище в памяти."""
    return FakeDatabase()


@pytest.fixture
def fake_card_repository() -> FakeCardRepository:
    return FakeCardRepository()


@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_user_row() -> dict[str, Any]:
    """Строка remote_users."""
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    return {
        "tg_id": 123456789,
        "username": "test_user",
        "first_name": "Тест",
        "last_name": "Пользователь",
        "language_code": "ru",
        "created_at": now,
        "last_seen_at": now,
        "mini_app_launch_count": 2,
        "bot_start_count": 1,
        "bot_started_at": now,
    }


@pytest.fixture
def sample_card_row() -> dict[str, Any]:
    """Строка cards."""
    return {
        "kid": "0123456789abcdef0123456789abcdef",
        "card_no": "0001",
        "issuer": "Pinka Plus",
        "card_type": "Personality",
        "series": "Creme",
        "collection_name": "Spring",
        "owner_tg_id": 555,
        "utc_date": "2025-03-01",
        "utc_time": "12:00:00",
        "created_at": datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc),
    }


@pytest.fixture
def new_card() -> NewCard:
    return NewCard(
        card_no="0001",
        issuer="Pinka Plus",
        card_type="Personality",
        series="Creme",
        collection_name="  Spring ",
        owner_tg_id=555,
    )
