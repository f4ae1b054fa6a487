"""
Exception handlers para FastAPI.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    BroadcastException,
    ChannelUnavailableError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    ExternalAPIError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Ordem importa: primeira classe compativel define o status
STATUS_POR_EXCEPTION = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (ChannelUnavailableError, 503),
    (ExternalAPIError, 502),
    (DatabaseError, 503),
    (ConfigurationError, 500),
)


def status_code_para(exc: BroadcastException) -> int:
    for classe, status_code in STATUS_POR_EXCEPTION:
        if isinstance(exc, classe):
            return status_code
    return 500


async def broadcast_exception_handler(request: Request, exc: BroadcastException) -> JSONResponse:
    """Handler para todas as exceptions customizadas."""
    status_code = status_code_para(exc)
    error_type = exc.__class__.__name__

    log_func = logger.error if status_code >= 500 else logger.warning
    log_func(
        f"{error_type}: {exc.message}",
        extra={"error_type": error_type, "details": exc.details, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_type, "message": exc.message, "details": exc.details},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler para exceptions nao tratadas."""
    logger.exception(f"Erro nao tratado: {exc}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "Erro interno do servidor",
            "details": {},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Registra os exception handlers no app FastAPI.

    Usage:
        from app.api.error_handlers import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(BroadcastException, broadcast_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
