#!/usr/bin/env python3
# main.py
"""
Главная точка входа Pinka Core.
Запускает Ledger API, Telegram Bot или оба компонента в зависимости от аргументов.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg

_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def run_api() -> None:
    """Запускает Ledger API (uvicorn)."""
    import uvicorn

    await log_info(
        f"Запуск Ledger API на {settings.deployment.API_HOST}:{settings.deployment.API_PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "src.services.ledger_api.app:app",
        host=settings.deployment.API_HOST,
        port=settings.deployment.API_PORT,
        reload=False,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("Ledger API: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_bot() -> None:
    """Запускает Telegram Bot (polling)."""
    from src.bot.app import run_polling

    await log_info("Запуск Telegram Bot...", type_msg=TypeMsg.INFO)
    try:
        await run_polling(settings)
    except asyncio.CancelledError:
        await log_info("Bot: получен сигнал остановки", type_msg=TypeMsg.DEBUG)
        raise


COMPONENTS = {
    "api": (run_api,),
    "bot": (run_bot,),
    "all": (run_api, run_bot),
}


def resolve_mode(argv: list[str]) -> str | None:
    """
    Режим из аргументов командной строки, иначе из COMPONENT_MODE.

    Returns:
        Режим или None, если он не распознан
    """
    mode = argv[1].lower() if len(argv) > 1 else settings.system.COMPONENT_MODE
    return mode if mode in COMPONENTS else None


async def main(mode: str = "api") -> None:
    """
    Главная функция запуска.

    Args:
        mode: api, bot или all
    """
    setup_logging()

    runners = COMPONENTS.get(mode)
    if runners is None:
        await log_error(f"Неизвестный режим: {mode}")
        return

    setup_signal_handlers()
    await log_info(
        f"Pinka Core v{settings.system.VERSION}: режим '{mode}', компоненты: {len(runners)}",
        type_msg=TypeMsg.INFO,
    )

    try:
        _running_tasks.extend(asyncio.create_task(runner()) for runner in runners)
        # Падение одного компонента не останавливает другой
        results = await asyncio.gather(*_running_tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                await log_error(f"Компонент завершился с ошибкой: {result}")

    except KeyboardInterrupt:
        await log_info("Получен сигнал остановки (Ctrl+C)", type_msg=TypeMsg.INFO)
    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        if _running_tasks:
            for task in _running_tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*_running_tasks, return_exceptions=True)
            _running_tasks.clear()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
Pinka Core - реестр присутствия пользователей и каталог карт

Использование:
    python main.py [mode]

Режимы:
    api    - Ledger API (FastAPI)
    bot    - Telegram Bot (/start → Ledger API)
    all    - оба компонента в одном процессе

Без аргумента режим берётся из COMPONENT_MODE.
    """)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1].lower() in ("--help", "-h"):
        print_usage()
        sys.exit(0)

    selected = resolve_mode(sys.argv)
    if selected is None:
        print_usage()
        sys.exit(2)

    try:
        asyncio.run(main(mode=selected))
    except KeyboardInterrupt:
        pass
