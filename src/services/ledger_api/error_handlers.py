# src/services/ledger_api/error_handlers.py
"""
Глобальные обработчики ошибок.

Три слоя: LedgerError (домен), RequestValidationError (pydantic),
Exception (всё остальное, без внутренних деталей в ответе).
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.errors import LedgerError
from src.common.logger import log_error, log_info


def register_error_handlers(app: FastAPI) -> None:
    """Регистрирует обработчики на приложении."""

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        level = TypeMsg.WARNING if exc.http_status >= 500 else TypeMsg.DEBUG
        await log_info(
            f"{exc.code} on {request.url.path}: {exc.message}",
            type_msg=level,
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        await log_info(
            f"Validation error on {request.url.path}: {exc.errors()}",
            type_msg=TypeMsg.DEBUG,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "ok": False,
                "error": "validation_error",
                "message": "Invalid request data",
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                        "type": e["type"],
                    }
                    for e in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        await log_error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "error": "internal_error",
                "message": "An unexpected error occurred",
            },
        )
