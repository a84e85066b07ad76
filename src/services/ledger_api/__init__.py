# src/services/ledger_api/__init__.py
"""
Ledger API (FastAPI).
"""

from src.services.ledger_api.app import attach_services, create_app

__all__ = [
    "attach_services",
    "create_app",
]
