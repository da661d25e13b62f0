"""Map service exceptions onto JSON HTTP responses."""
from __future__ import annotations

from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from .errors import (
    ConflictError,
    NotFoundError,
    SeatshareError,
    UnsupportedError,
    ValidationError,
)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]

STATUS_BY_ERROR: dict[type[SeatshareError], int] = {
    NotFoundError: 404,
    UnsupportedError: 422,
    ValidationError: 400,
    ConflictError: 409,
}


def status_for(exc: SeatshareError) -> int:
    for error_type in type(exc).__mro__:
        code = STATUS_BY_ERROR.get(error_type)
        if code is not None:
            return code
    return status.HTTP_400_BAD_REQUEST


async def seatshare_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, SeatshareError) else SeatshareError(str(exc))
    return JSONResponse(
        status_code=status_for(error),
        content={"detail": error.message, "error": type(error).__name__},
    )


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("store failure on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    SeatshareError: seatshare_error_handler,
    SQLAlchemyError: store_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
