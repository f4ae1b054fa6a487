"""
Broadcasts: mensagens de operador para uma audiencia de usuarios.

Uso:
    from app.services.broadcasts import broadcast_executor, campaign_store

    campaign = await campaign_store.create("Novidade", "Texto", target_segment=AudienceSegment.ACTIVE)
    result = await broadcast_executor.send(campaign.id)
"""

from app.services.broadcasts.aggregator import StatusAggregator, status_aggregator
from app.services.broadcasts.audience import AudienceResolver, audience_resolver
from app.services.broadcasts.cancellation import CancelRegistry, cancel_registry
from app.services.broadcasts.dispatcher import DispatchEngine, dispatch_engine
from app.services.broadcasts.executor import BroadcastExecutor, broadcast_executor
from app.services.broadcasts.lease import DispatchLease, dispatch_lease
from app.services.broadcasts.repository import (
    AudienceRepository,
    CampaignStore,
    RecipientRepository,
    audience_repository,
    campaign_store,
    recipient_repository,
)
from app.services.broadcasts.types import (
    AudienceSegment,
    Campaign,
    CampaignDetails,
    CampaignPage,
    CampaignStatus,
    DeliveryStatus,
    DispatchResult,
    DispatchTotals,
    Recipient,
    RecipientCounts,
    ScheduledRunResult,
)

__all__ = [
    "AudienceRepository",
    "AudienceResolver",
    "AudienceSegment",
    "BroadcastExecutor",
    "Campaign",
    "CampaignDetails",
    "CampaignPage",
    "CampaignStatus",
    "CampaignStore",
    "CancelRegistry",
    "DeliveryStatus",
    "DispatchEngine",
    "DispatchLease",
    "DispatchResult",
    "DispatchTotals",
    "Recipient",
    "RecipientCounts",
    "RecipientRepository",
    "ScheduledRunResult",
    "StatusAggregator",
    "audience_repository",
    "audience_resolver",
    "broadcast_executor",
    "campaign_store",
    "cancel_registry",
    "dispatch_engine",
    "dispatch_lease",
    "recipient_repository",
    "status_aggregator",
]
