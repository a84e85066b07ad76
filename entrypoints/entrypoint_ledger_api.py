#!/usr/bin/env python3
# entrypoint_ledger_api.py
"""
Точка входа для Ledger API в Docker контейнере.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Корень проекта в sys.path, чтобы импортировался main
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from main import main


if __name__ == "__main__":
    try:
        asyncio.run(main(mode="api"))
    except KeyboardInterrupt:
        pass
