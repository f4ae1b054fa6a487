"""
Cliente HTTP compartilhado pelos canais de envio.

Um unico httpx.AsyncClient (HTTP/2, keep-alive) atende todos os workers
do dispatch. O timeout por envio e aplicado pelo dispatcher; o timeout
de transporte aqui e apenas o teto.
"""

import asyncio
import logging
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[httpx.AsyncClient] = None
_lock = asyncio.Lock()


def _criar_client() -> httpx.AsyncClient:
    workers = settings.BROADCAST_MAX_WORKERS
    teto = max(settings.BROADCAST_SEND_TIMEOUT_SECONDS * 2, 10.0)

    return httpx.AsyncClient(
        http2=True,
        timeout=httpx.Timeout(teto, connect=10.0, pool=5.0),
        limits=httpx.Limits(
            max_connections=max(20, workers * 2),
            max_keepalive_connections=workers,
            keepalive_expiry=30.0,
        ),
        headers={"User-Agent": f"{settings.APP_NAME.replace(' ', '-')}/0.1"},
    )


async def get_http_client() -> httpx.AsyncClient:
    """
    Retorna o cliente compartilhado, criando na primeira chamada.

    Varios workers podem chamar ao mesmo tempo no inicio de um envio;
    o lock garante um unico pool de conexoes.
    """
    global _client
    if _client is not None:
        return _client

    async with _lock:
        if _client is None:
            _client = _criar_client()
            logger.info(
                f"[HTTP] Client criado (workers={settings.BROADCAST_MAX_WORKERS})"
            )
    return _client


async def close_http_client() -> None:
    """Fecha o cliente no shutdown da aplicacao."""
    global _client
    if _client is None:
        return

    await _client.aclose()
    _client = None
    logger.info("[HTTP] Client fechado")
