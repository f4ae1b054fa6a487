"""
Cancelamento cooperativo de broadcasts em andamento.

O operador grava uma flag no Redis; os workers do dispatcher checam a
flag antes de cada envio e param de pegar destinatarios. Quem ja estava
em voo termina normalmente. O restante fica pending e a campanha e
abortada pelo agregador.
"""

import logging

from app.core.config import settings
from app.core.exceptions import ExternalAPIError
from app.services.broadcasts.constants import CHAVE_CANCELAMENTO
from app.services.redis import redis_client

logger = logging.getLogger(__name__)


def _chave(campaign_id: int) -> str:
    return CHAVE_CANCELAMENTO.format(campaign_id=campaign_id)


class CancelRegistry:
    """Flags de cancelamento por campanha (Redis, com TTL)."""

    def __init__(self, ttl_seconds: int = None):
        self.ttl_seconds = ttl_seconds or settings.BROADCAST_CANCEL_TTL_SECONDS

    async def request(self, campaign_id: int) -> None:
        """
        Sinaliza cancelamento.

        Raises:
            ExternalAPIError: Redis indisponivel
        """
        try:
            await redis_client.set(_chave(campaign_id), "1", ex=self.ttl_seconds)
        except Exception as e:
            logger.error(f"[Cancel] Erro ao gravar flag da campanha {campaign_id}: {e}")
            raise ExternalAPIError(
                "Nao foi possivel registrar o cancelamento",
                service="redis",
                details={"campaign_id": campaign_id},
                original_error=e,
            ) from e

        logger.info(
            f"[Cancel] Cancelamento solicitado para campanha {campaign_id}",
            extra={"campaign_id": campaign_id},
        )

    async def is_requested(self, campaign_id: int) -> bool:
        """Retorna True se ha flag de cancelamento (False se Redis falhar)."""
        try:
            return bool(await redis_client.exists(_chave(campaign_id)))
        except Exception as e:
            logger.warning(f"[Cancel] Erro ao ler flag da campanha {campaign_id}: {e}")
            return False

    async def clear(self, campaign_id: int) -> None:
        """Remove a flag (campanha ja terminal)."""
        try:
            await redis_client.delete(_chave(campaign_id))
        except Exception as e:
            # Flag expira pelo TTL
            logger.warning(f"[Cancel] Erro ao limpar flag da campanha {campaign_id}: {e}")


cancel_registry = CancelRegistry()
