# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с PostgreSQL.
"""

from src.infra.database import DatabaseManager, open_database
from src.infra.upsert import NOW, Upsert

__all__ = [
    "DatabaseManager",
    "open_database",
    "NOW",
    "Upsert",
]
