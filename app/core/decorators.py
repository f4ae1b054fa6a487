"""
Decorators utilitarios.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Optional, ParamSpec, TypeVar

from app.core.exceptions import BroadcastException, DatabaseError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def handle_errors(
    default_return: Optional[Any] = None, log_level: str = "error", reraise: bool = True
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """
    Decorator para tratamento padronizado de erros em acesso a banco.

    Exceptions do dominio (BroadcastException) passam direto. Qualquer
    outra exception e logada e convertida em DatabaseError, ou engolida
    com `default_return` quando reraise=False.

    Args:
        default_return: Valor retornado em caso de erro (se reraise=False)
        log_level: Nivel de log para erros ('error', 'warning', 'info')
        reraise: Se True, levanta DatabaseError apos logar

    Usage:
        @handle_errors()
        async def finalize(self, campaign_id, totals):
            ...

        @handle_errors(default_return=0, reraise=False)
        async def contar_algo():
            ...
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except BroadcastException:
                raise
            except Exception as e:
                log_func = getattr(logger, log_level, logger.error)
                log_func(
                    f"Erro em {func.__qualname__}: {e}",
                    exc_info=True,
                    extra={"error_type": type(e).__name__},
                )

                if reraise:
                    raise DatabaseError(
                        f"Erro de banco em {func.__qualname__}",
                        details={"error": str(e)},
                        original_error=e,
                    ) from e

                return default_return

        return wrapper

    return decorator
