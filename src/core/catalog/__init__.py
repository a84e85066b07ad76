# src/core/catalog/__init__.py
"""
Каталог карт: выдача KID и хранение карт.
"""

from src.core.catalog.allocator import KidAllocator, generate_kid
from src.core.catalog.models import Card, NewCard
from src.core.catalog.repository import CardRepository
from src.core.catalog.service import CatalogService

__all__ = [
    "KidAllocator",
    "generate_kid",
    "Card",
    "NewCard",
    "CardRepository",
    "CatalogService",
]
