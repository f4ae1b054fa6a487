"""
Lease de dispatch: no maximo um pool de envio por campanha.

`begin_send` impede dois envios a partir de draft/scheduled, mas uma
campanha em sending pode ser retomada (resume, bridge). Sem o lease, uma
retomada durante o envio original abriria um segundo pool sobre as
mesmas linhas pending e cada destinatario receberia a mensagem duas vezes.

O lease e uma chave Redis (SET NX EX) com token do dono, renovada
enquanto o pool roda. Se o processo morrer, expira pelo TTL e a
campanha pode ser retomada.

Uso:
    async with dispatch_lease.hold(campaign_id):
        ...  # pool de envio
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from app.core.config import settings
from app.core.exceptions import ConflictError, ExternalAPIError
from app.services.broadcasts.constants import CHAVE_LEASE_DISPATCH
from app.services.broadcasts.types import CampaignStatus
from app.services.redis import redis_client

logger = logging.getLogger(__name__)

# So libera/renova se o valor ainda for o token do dono
LUA_LIBERAR = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

LUA_RENOVAR = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
else
    return 0
end
"""


def _chave(campaign_id: int) -> str:
    return CHAVE_LEASE_DISPATCH.format(campaign_id=campaign_id)


class DispatchLease:
    """Lease exclusivo de dispatch por campanha (Redis, com TTL renovado)."""

    def __init__(self, ttl_seconds: int = None):
        self.ttl_seconds = ttl_seconds or settings.BROADCAST_DISPATCH_LEASE_TTL_SECONDS

    async def _adquirir(self, campaign_id: int, token: str) -> bool:
        try:
            result = await redis_client.set(_chave(campaign_id), token, nx=True, ex=self.ttl_seconds)
        except Exception as e:
            logger.error(f"[Lease] Erro ao adquirir lease da campanha {campaign_id}: {e}")
            raise ExternalAPIError(
                "Nao foi possivel garantir envio exclusivo",
                service="redis",
                details={"campaign_id": campaign_id},
                original_error=e,
            ) from e
        return bool(result)

    async def _renovar(self, campaign_id: int, token: str) -> None:
        intervalo = max(self.ttl_seconds / 3, 1)
        while True:
            await asyncio.sleep(intervalo)
            try:
                renovado = await redis_client.eval(
                    LUA_RENOVAR, 1, _chave(campaign_id), token, self.ttl_seconds
                )
            except Exception as e:
                logger.warning(f"[Lease] Erro ao renovar lease da campanha {campaign_id}: {e}")
                continue
            if not renovado:
                logger.error(
                    f"[Lease] Lease da campanha {campaign_id} expirou durante o envio",
                    extra={"campaign_id": campaign_id},
                )
                return

    async def _liberar(self, campaign_id: int, token: str) -> None:
        try:
            await redis_client.eval(LUA_LIBERAR, 1, _chave(campaign_id), token)
        except Exception as e:
            # Expira pelo TTL
            logger.warning(f"[Lease] Erro ao liberar lease da campanha {campaign_id}: {e}")

    @asynccontextmanager
    async def hold(self, campaign_id: int) -> AsyncIterator[None]:
        """
        Segura o lease durante o bloco.

        Raises:
            ConflictError: Outro pool ja esta enviando esta campanha
            ExternalAPIError: Redis indisponivel
        """
        token = str(uuid.uuid4())
        if not await self._adquirir(campaign_id, token):
            logger.warning(
                f"[Lease] Campanha {campaign_id} ja esta sendo enviada por outro processo",
                extra={"campaign_id": campaign_id},
            )
            raise ConflictError(
                f"Campanha {campaign_id} ja esta sendo enviada",
                campaign_id=campaign_id,
                current_status=CampaignStatus.SENDING.value,
            )

        renovacao = asyncio.create_task(self._renovar(campaign_id, token))
        try:
            yield
        finally:
            renovacao.cancel()
            await asyncio.gather(renovacao, return_exceptions=True)
            await self._liberar(campaign_id, token)


dispatch_lease = DispatchLease()
