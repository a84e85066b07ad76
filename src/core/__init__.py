# src/core/__init__.py
"""
Ядро: проверка initData, реестр присутствия, каталог карт.
"""
