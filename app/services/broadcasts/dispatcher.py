"""
Dispatch de broadcasts.

Fluxo de um envio:
0. Segura o lease da campanha (um pool por campanha, inclusive retomadas)
1. Adquire o canal (indisponivel -> abort antes do snapshot)
2. Grava snapshot de destinatarios como pending
3. Pool de workers com limite de concorrencia, rate limit global e
   timeout por envio. Cada resultado e gravado na hora.
4. Agregador conclui ou aborta a campanha

Falha de um destinatario nunca interrompe os demais. Erro de banco (ou
Redis fora no rate limit) interrompe o pool e sobe para o executor.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional

from app.core.config import settings
from app.core.exceptions import ChannelUnavailableError
from app.services.broadcasts.aggregator import StatusAggregator, status_aggregator
from app.services.broadcasts.cancellation import CancelRegistry, cancel_registry
from app.services.broadcasts.constants import MOTIVO_SEM_ENDERECO
from app.services.broadcasts.lease import DispatchLease, dispatch_lease
from app.services.broadcasts.repository import (
    AudienceRepository,
    RecipientRepository,
    audience_repository,
    recipient_repository,
)
from app.services.broadcasts.types import Campaign, DeliveryStatus, DispatchResult
from app.services.channel import ChannelClient, SendResult, get_channel_client
from app.services.rate_limiter import TokenBucket, limiter_envio

logger = logging.getLogger(__name__)


def renderizar_mensagem(title: str, body: str) -> str:
    """Titulo em negrito (Markdown), linha em branco, corpo."""
    return f"*{title}*\n\n{body}"


def truncar_erro(erro: Optional[str], max_chars: int) -> str:
    erro = erro or "erro desconhecido"
    return erro[:max_chars]


@dataclass
class _Progresso:
    enviados: int = 0
    falhas: int = 0


class DispatchEngine:
    """
    Envia a mensagem de uma campanha para uma lista de destinatarios.

    Dependencias injetaveis para teste; defaults vem dos singletons e
    do settings.
    """

    def __init__(
        self,
        recipients: RecipientRepository = None,
        audience: AudienceRepository = None,
        aggregator: StatusAggregator = None,
        cancellations: CancelRegistry = None,
        leases: DispatchLease = None,
        channel_factory: Callable[[], ChannelClient] = None,
        limiter: TokenBucket = None,
        max_workers: int = None,
        send_timeout: float = None,
        error_max_chars: int = None,
    ):
        self.recipients = recipients or recipient_repository
        self.audience = audience or audience_repository
        self.aggregator = aggregator or status_aggregator
        self.cancellations = cancellations or cancel_registry
        self.leases = leases or dispatch_lease
        self.channel_factory = channel_factory or get_channel_client
        self.limiter = limiter or limiter_envio
        self.max_workers = max_workers or settings.BROADCAST_MAX_WORKERS
        self.send_timeout = send_timeout or settings.BROADCAST_SEND_TIMEOUT_SECONDS
        self.error_max_chars = error_max_chars or settings.BROADCAST_ERROR_MAX_CHARS

    async def dispatch(self, campaign: Campaign, user_ids: List[int]) -> DispatchResult:
        """
        Envia para a audiencia resolvida de uma campanha em sending.

        Args:
            campaign: Campanha ja reivindicada por begin_send
            user_ids: Audiencia resolvida

        Returns:
            DispatchResult com status final

        Raises:
            ConflictError: Outro pool ja esta enviando a campanha
            ChannelUnavailableError: Canal indisponivel (campanha abortada)
            DatabaseError: Falha de banco (o executor aborta a campanha)
        """
        async with self.leases.hold(campaign.id):
            if not user_ids:
                logger.info(
                    f"[Dispatch] Campanha {campaign.id} sem destinatarios, concluindo",
                    extra={"campaign_id": campaign.id},
                )
                return await self.aggregator.finalize(campaign.id)

            client = await self._adquirir_canal(campaign.id)

            await self.recipients.create_snapshot(campaign.id, user_ids)
            await self._executar_pool(campaign, user_ids, client)

            return await self.aggregator.finalize(campaign.id)

    async def dispatch_pending(self, campaign: Campaign) -> DispatchResult:
        """
        Retoma campanha em sending enviando apenas os destinatarios pending.

        Linhas ja sent/failed nao sao tocadas. Se o envio original ainda
        estiver rodando, o lease recusa a retomada.

        Raises:
            ConflictError: Outro pool ja esta enviando a campanha
        """
        async with self.leases.hold(campaign.id):
            pendentes = await self.recipients.list_pending_user_ids(campaign.id)
            logger.info(
                f"[Dispatch] Retomando campanha {campaign.id}: {len(pendentes)} pendentes",
                extra={"campaign_id": campaign.id},
            )

            if pendentes:
                client = await self._adquirir_canal(campaign.id)
                await self._executar_pool(campaign, pendentes, client)

            return await self.aggregator.finalize(campaign.id)

    async def _adquirir_canal(self, campaign_id: int) -> ChannelClient:
        """
        Constroi o canal e checa disponibilidade.

        Raises:
            ChannelUnavailableError: Apos abortar a campanha
        """
        try:
            client = self.channel_factory()
            disponivel = await client.is_available()
            motivo = "provedor nao respondeu ao health check"
        except ChannelUnavailableError as e:
            client = None
            disponivel = False
            motivo = e.message

        if disponivel:
            return client

        logger.error(
            f"[Dispatch] Canal indisponivel para campanha {campaign_id}: {motivo}",
            extra={"campaign_id": campaign_id},
        )
        await self.aggregator.finalize(campaign_id, cancelled=True)
        raise ChannelUnavailableError(
            f"Canal indisponivel: {motivo}",
            details={"campaign_id": campaign_id},
        )

    async def _executar_pool(
        self,
        campaign: Campaign,
        user_ids: List[int],
        client: ChannelClient,
    ) -> _Progresso:
        """Roda os workers ate esgotar a fila, cancelar ou falhar o banco."""
        enderecos = await self.audience.get_addresses(user_ids)
        corpo = renderizar_mensagem(campaign.title, campaign.body)
        fila = iter(user_ids)
        parar = asyncio.Event()
        progresso = _Progresso()

        n_workers = min(self.max_workers, len(user_ids))
        tasks = [
            asyncio.create_task(
                self._worker(campaign.id, fila, enderecos, corpo, client, parar, progresso)
            )
            for _ in range(n_workers)
        ]

        try:
            await asyncio.gather(*tasks)
        except Exception:
            parar.set()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(
            f"[Dispatch] Pool da campanha {campaign.id} terminou: {progresso.enviados} enviados, "
            f"{progresso.falhas} falhas",
            extra={"campaign_id": campaign.id},
        )
        return progresso

    async def _worker(
        self,
        campaign_id: int,
        fila: Iterator[int],
        enderecos: Dict[int, Optional[str]],
        corpo: str,
        client: ChannelClient,
        parar: asyncio.Event,
        progresso: _Progresso,
    ) -> None:
        # O iterador e compartilhado: cada next() entrega um destinatario a um worker
        for user_id in fila:
            if parar.is_set():
                return
            if await self.cancellations.is_requested(campaign_id):
                logger.info(
                    f"[Dispatch] Cancelamento detectado na campanha {campaign_id}",
                    extra={"campaign_id": campaign_id},
                )
                parar.set()
                return

            status = await self._entregar(campaign_id, user_id, enderecos.get(user_id), corpo, client)
            if status == DeliveryStatus.SENT:
                progresso.enviados += 1
            else:
                progresso.falhas += 1

    async def _entregar(
        self,
        campaign_id: int,
        user_id: int,
        endereco: Optional[str],
        corpo: str,
        client: ChannelClient,
    ) -> DeliveryStatus:
        """Envia para um destinatario e grava o resultado."""
        if not endereco:
            await self.recipients.mark_failed(campaign_id, user_id, MOTIVO_SEM_ENDERECO)
            return DeliveryStatus.FAILED

        await self.limiter.acquire()

        try:
            result = await asyncio.wait_for(client.send(endereco, corpo), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            result = SendResult(success=False, error=f"timeout apos {self.send_timeout}s")
        except Exception as e:
            result = SendResult(success=False, error=str(e) or e.__class__.__name__)

        if result.success:
            await self.recipients.mark_sent(campaign_id, user_id)
            return DeliveryStatus.SENT

        erro = truncar_erro(result.error, self.error_max_chars)
        logger.warning(
            f"[Dispatch] Falha ao enviar campanha {campaign_id} para usuario {user_id}: {erro}",
            extra={"campaign_id": campaign_id, "user_id": user_id},
        )
        await self.recipients.mark_failed(campaign_id, user_id, erro)
        return DeliveryStatus.FAILED


dispatch_engine = DispatchEngine()
