# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины - config/config.json.
Секретные данные переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json(path: Path | None = None) -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "pinka_core"
    VERSION: str = "0.3.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "api"


class DeploymentSettings(BaseModel):
    """Настройки развертывания компонентов."""
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 10000
    # Адрес API, по которому бот отправляет события /start
    LEDGER_API_URL: str = "http://localhost:10000"

    @field_validator("LEDGER_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Убирает завершающие слэши."""
        return v.rstrip("/")


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10485760


class TelegramSettings(BaseModel):
    """Настройки Telegram: общий секрет бота."""
    BOT_TOKEN: str = ""
    BOT_START_TEXT: str = "Открой мини-приложение через кнопку «Open» в профиле бота или в меню."

    @field_validator("BOT_TOKEN", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает токен из переменных окружения, если не задан."""
        if not v:
            return os.getenv("BOT_TOKEN", "")
        return v


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "pinka"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    # Ограничение на каждый запрос и на ожидание соединения из пула (секунды)
    DB_COMMAND_TIMEOUT: float = 5.0
    DB_CONNECT_ATTEMPTS: int = 3
    DB_CONNECT_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @field_validator("DB_COMMAND_TIMEOUT")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        """Таймаут обязателен: без него запрос может висеть бесконечно."""
        if v <= 0:
            raise ValueError("DB_COMMAND_TIMEOUT должен быть больше нуля")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class CatalogSettings(BaseModel):
    """Настройки каталога карт."""
    KID_MAX_ATTEMPTS: int = Field(default=6, ge=1)
    KID_PERSIST_ATTEMPTS: int = Field(default=3, ge=1)
    ISSUERS: list[str] = Field(default_factory=lambda: ["Pinka Plus"])
    CARD_TYPES: list[str] = Field(default_factory=lambda: ["Personality"])
    SERIES: list[str] = Field(default_factory=lambda: ["Creme"])


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def from_config_json(cls, path: Path | None = None) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и адреса переопределяются из переменных окружения.
        """
        config_data = load_config_json(path)

        # Фильтруем комментарии (ключи, начинающиеся с _comment_)
        data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "pinka_core"),
                VERSION=data.get("VERSION", "0.3.0"),
                DEBUG=data.get("DEBUG", False),
                ENVIRONMENT=data.get("ENVIRONMENT", "development"),
                COMPONENT_MODE=os.getenv("COMPONENT_MODE", data.get("COMPONENT_MODE", "api")),
            ),
            deployment=DeploymentSettings(
                API_HOST=os.getenv("API_HOST", data.get("API_HOST", "0.0.0.0")),
                API_PORT=int(os.getenv("API_PORT", data.get("API_PORT", 10000))),
                LEDGER_API_URL=os.getenv("LEDGER_API_URL", data.get("LEDGER_API_URL", "http://localhost:10000")),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=os.getenv("LOG_LEVEL", data.get("LOG_LEVEL", "INFO")),
                LOG_FORMAT=data.get("LOG_FORMAT", "colored"),
                LOG_TO_FILE=data.get("LOG_TO_FILE", False),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
            ),
            telegram=TelegramSettings(
                BOT_TOKEN=os.getenv("BOT_TOKEN", data.get("BOT_TOKEN", "")),
                BOT_START_TEXT=data.get("BOT_START_TEXT", TelegramSettings().BOT_START_TEXT),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "pinka")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 2),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 10),
                DB_COMMAND_TIMEOUT=float(os.getenv("DB_COMMAND_TIMEOUT", data.get("DB_COMMAND_TIMEOUT", 5.0))),
                DB_CONNECT_ATTEMPTS=data.get("DB_CONNECT_ATTEMPTS", 3),
                DB_CONNECT_DELAY=data.get("DB_CONNECT_DELAY", 1.0),
            ),
            catalog=CatalogSettings(
                KID_MAX_ATTEMPTS=data.get("KID_MAX_ATTEMPTS", 6),
                KID_PERSIST_ATTEMPTS=data.get("KID_PERSIST_ATTEMPTS", 3),
                ISSUERS=data.get("ISSUERS", ["Pinka Plus"]),
                CARD_TYPES=data.get("CARD_TYPES", ["Personality"]),
                SERIES=data.get("SERIES", ["Creme"]),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает настройки приложения.
    Использует кэширование, файл читается один раз за процесс.
    """
    from dotenv import load_dotenv

    # Загружаем .env файл
    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт для удобного импорта
settings = get_settings()
