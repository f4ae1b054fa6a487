"""
Executor de broadcasts.

Ponto de entrada das operacoes de envio:
- send: reivindica, resolve audiencia e despacha
- resume: termina os pending de uma campanha presa em sending
- request_cancel: sinaliza cancelamento de envio em andamento
- process_due_scheduled: dispara campanhas agendadas vencidas
"""

import logging
from datetime import datetime

from app.core.exceptions import (
    BroadcastException,
    ChannelUnavailableError,
    ConflictError,
)
from app.services.broadcasts.aggregator import StatusAggregator, status_aggregator
from app.services.broadcasts.audience import AudienceResolver, audience_resolver
from app.services.broadcasts.cancellation import CancelRegistry, cancel_registry
from app.services.broadcasts.dispatcher import DispatchEngine, dispatch_engine
from app.services.broadcasts.repository import CampaignStore, campaign_store
from app.services.broadcasts.types import (
    CampaignStatus,
    DispatchResult,
    ScheduledRunResult,
)

logger = logging.getLogger(__name__)


class BroadcastExecutor:
    """Orquestra o ciclo de vida de envio das campanhas."""

    def __init__(
        self,
        store: CampaignStore = None,
        resolver: AudienceResolver = None,
        engine: DispatchEngine = None,
        aggregator: StatusAggregator = None,
        cancellations: CancelRegistry = None,
    ):
        self.store = store or campaign_store
        self.resolver = resolver or audience_resolver
        self.engine = engine or dispatch_engine
        self.aggregator = aggregator or status_aggregator
        self.cancellations = cancellations or cancel_registry

    async def send(self, campaign_id: int) -> DispatchResult:
        """
        Envia uma campanha.

        Args:
            campaign_id: Campanha em draft ou scheduled

        Returns:
            DispatchResult com status final e contadores

        Raises:
            ConflictError: Campanha ja reivindicada ou terminal
            NotFoundError: Campanha nao existe
            ChannelUnavailableError: Canal indisponivel (campanha cancelada)
            DatabaseError: Falha de banco durante o envio (campanha abortada)
        """
        logger.info(
            f"[Broadcast] Iniciando envio da campanha {campaign_id}",
            extra={"campaign_id": campaign_id},
        )

        campaign = await self.store.begin_send(campaign_id)

        try:
            user_ids = await self.resolver.resolve(campaign)
            return await self.engine.dispatch(campaign, user_ids)
        except (ChannelUnavailableError, ConflictError):
            raise
        except Exception as e:
            logger.error(
                f"[Broadcast] Erro no envio da campanha {campaign_id}: {e}",
                exc_info=True,
                extra={"campaign_id": campaign_id, "error_type": type(e).__name__},
            )
            await self._abortar_apos_erro(campaign_id)
            raise

    async def resume(self, campaign_id: int) -> DispatchResult:
        """
        Retoma campanha parada em sending (ex: processo reiniciado).

        Raises:
            ConflictError: Campanha nao esta em sending, ou o envio
                original ainda esta rodando (lease ocupado)
        """
        campaign = await self.store.get(campaign_id)
        if campaign.status != CampaignStatus.SENDING:
            raise ConflictError(
                f"Apenas campanhas em sending podem ser retomadas (atual: {campaign.status.value})",
                campaign_id=campaign_id,
                current_status=campaign.status.value,
            )

        try:
            return await self.engine.dispatch_pending(campaign)
        except (ChannelUnavailableError, ConflictError):
            raise
        except Exception as e:
            logger.error(
                f"[Broadcast] Erro ao retomar campanha {campaign_id}: {e}",
                exc_info=True,
                extra={"campaign_id": campaign_id, "error_type": type(e).__name__},
            )
            await self._abortar_apos_erro(campaign_id)
            raise

    async def request_cancel(self, campaign_id: int) -> None:
        """
        Solicita cancelamento de campanha em envio.

        Raises:
            ConflictError: Campanha nao esta em sending
        """
        campaign = await self.store.get(campaign_id)
        if campaign.status != CampaignStatus.SENDING:
            raise ConflictError(
                f"Apenas campanhas em sending podem ser canceladas (atual: {campaign.status.value})",
                campaign_id=campaign_id,
                current_status=campaign.status.value,
            )

        await self.cancellations.request(campaign_id)

    async def process_due_scheduled(self, agora: datetime = None) -> ScheduledRunResult:
        """
        Envia campanhas agendadas vencidas, uma por vez.

        Conflito (outro processo ja reivindicou) nao e erro. Falha de uma
        campanha nao impede as seguintes.
        """
        devidas = await self.store.list_due_scheduled(agora)
        resultado = ScheduledRunResult(found=len(devidas))

        for campaign in devidas:
            try:
                resultado.results.append(await self.send(campaign.id))
                resultado.started += 1
            except ConflictError:
                resultado.conflicts += 1
                logger.info(
                    f"[Broadcast] Campanha agendada {campaign.id} ja reivindicada",
                    extra={"campaign_id": campaign.id},
                )
            except BroadcastException as e:
                resultado.failed += 1
                logger.error(
                    f"[Broadcast] Falha ao enviar campanha agendada {campaign.id}: {e}",
                    extra={"campaign_id": campaign.id, "error_type": type(e).__name__},
                )

        if devidas:
            logger.info(
                f"[Broadcast] Agendadas: {resultado.found} vencidas, {resultado.started} enviadas, "
                f"{resultado.conflicts} conflitos, {resultado.failed} falhas"
            )
        return resultado

    async def _abortar_apos_erro(self, campaign_id: int) -> None:
        """Tenta levar a campanha a cancelled; o erro original sobe de qualquer forma."""
        try:
            await self.aggregator.finalize(campaign_id, cancelled=True)
        except Exception as e:
            logger.error(
                f"[Broadcast] Nao foi possivel abortar campanha {campaign_id}: {e}",
                extra={"campaign_id": campaign_id},
            )


broadcast_executor = BroadcastExecutor()
