# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Channel(str, Enum):
    """Каналы, через которые пользователь попадает в реестр присутствия."""
    MINIAPP = "miniapp"
    BOT = "bot"


class PresenceSource(str, Enum):
    """Откуда пользователь нам известен (вычисляется по счётчикам)."""
    BOT = "BOT"
    MINIAPP = "MINIAPP"
    BOT_AND_MINIAPP = "BOT+MINIAPP"
    UNKNOWN = "UNKNOWN"


# Заголовок, которым бот подтверждает знание общего секрета
BOT_TOKEN_HEADER = "x-bot-token"

# Ключ вывода подписи Mini App (см. документацию Telegram WebApp)
WEB_APP_DATA_KEY = b"WebAppData"

# Длина KID в байтах энтропии (32 hex-символа)
KID_BYTES = 16

# Верхняя граница Telegram ID: колонки tg_id и owner_tg_id имеют тип BIGINT
MAX_TG_ID = 2**63 - 1
