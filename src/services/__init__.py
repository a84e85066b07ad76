# src/services/__init__.py
"""
HTTP-сервисы.

- ledger_api: реестр присутствия (Mini App и бот) и каталог карт
"""

__all__: list[str] = []
