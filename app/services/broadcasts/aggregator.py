"""
Agregacao do resultado de um envio.

Conta as linhas de destinatario e leva a campanha ao status final:
- completed: todos os destinatarios com resultado (sent ou failed)
- cancelled: cancelamento solicitado com destinatarios ainda pending
  (ficam pending), ou abort forcado
"""

import logging

from app.services.broadcasts.cancellation import CancelRegistry, cancel_registry
from app.services.broadcasts.repository import (
    CampaignStore,
    RecipientRepository,
    campaign_store,
    recipient_repository,
)
from app.services.broadcasts.types import CampaignStatus, DispatchResult, DispatchTotals

logger = logging.getLogger(__name__)


class StatusAggregator:
    """Finaliza campanhas a partir das linhas de destinatario."""

    def __init__(
        self,
        store: CampaignStore = None,
        recipients: RecipientRepository = None,
        cancellations: CancelRegistry = None,
    ):
        self.store = store or campaign_store
        self.recipients = recipients or recipient_repository
        self.cancellations = cancellations or cancel_registry

    async def finalize(self, campaign_id: int, cancelled: bool = False) -> DispatchResult:
        """
        Grava contadores e status final da campanha.

        Cancelamento so vale se cortou o envio: com todos os destinatarios
        tentados a campanha conclui, mesmo que a flag tenha chegado durante
        o ultimo envio.

        Args:
            campaign_id: Campanha em sending
            cancelled: Forca abort (canal indisponivel, erro no envio)

        Returns:
            DispatchResult com status e contadores gravados
        """
        counts = await self.recipients.count_by_status(campaign_id)
        totals = DispatchTotals.from_counts(counts)

        if not cancelled and counts.pending:
            cancelled = await self.cancellations.is_requested(campaign_id)

        if cancelled:
            await self.store.abort(campaign_id, totals)
            await self.cancellations.clear(campaign_id)
            logger.info(
                f"[Aggregator] Campanha {campaign_id} cancelada: {counts.sent} enviados, "
                f"{counts.failed} falhas, {counts.pending} pendentes",
                extra={"campaign_id": campaign_id, "status": CampaignStatus.CANCELLED.value},
            )
            return DispatchResult(campaign_id, CampaignStatus.CANCELLED, totals)

        if counts.pending:
            # Sem cancelamento nao deveria sobrar pending; mantem sending para retomada
            logger.error(
                f"[Aggregator] Campanha {campaign_id} terminou com {counts.pending} pendentes; "
                f"mantida em sending para retomada",
                extra={"campaign_id": campaign_id, "status": CampaignStatus.SENDING.value},
            )
            return DispatchResult(campaign_id, CampaignStatus.SENDING, totals)

        await self.store.finalize(campaign_id, totals)
        # Flag que chegou tarde demais nao tem mais o que cancelar
        await self.cancellations.clear(campaign_id)
        logger.info(
            f"[Aggregator] Campanha {campaign_id} concluida: {counts.sent}/{counts.total} enviados, "
            f"{counts.failed} falhas",
            extra={"campaign_id": campaign_id, "status": CampaignStatus.COMPLETED.value},
        )
        return DispatchResult(campaign_id, CampaignStatus.COMPLETED, totals)


status_aggregator = StatusAggregator()
