# src/core/presence/__init__.py
"""
Реестр присутствия пользователей.
Одна запись на пользователя платформы, два канала записи.
"""

from src.core.presence.models import RemoteUser, UserProfile, presence_source
from src.core.presence.repository import PresenceRepository
from src.core.presence.service import PresenceLedger

__all__ = [
    "RemoteUser",
    "UserProfile",
    "presence_source",
    "PresenceRepository",
    "PresenceLedger",
]
