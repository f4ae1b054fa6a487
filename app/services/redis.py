"""
Cliente Redis para estado efemero compartilhado entre processos
(flags de cancelamento, lease de dispatch e rate limit de broadcast).
"""
import logging

import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)

# Conexao aberta sob demanda. Timeouts curtos: a flag e consultada
# antes de cada envio e nao pode travar os workers.
redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
    socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
)


async def verificar_conexao_redis() -> bool:
    """Ping usado pelo readiness check."""
    try:
        await redis_client.ping()
    except Exception as e:
        logger.error(f"[Redis] Sem conexao: {e}")
        return False
    return True


async def fechar_redis() -> None:
    """Fecha o pool de conexoes (shutdown)."""
    await redis_client.aclose()
    logger.debug("[Redis] Pool fechado")
