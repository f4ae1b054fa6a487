"""
Tipos e enums para broadcasts.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from app.core.timezone import parse_timestamp


class CampaignStatus(str, Enum):
    """Status possiveis de uma campanha de broadcast."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENDING = "sending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Status a partir dos quais begin_send pode reivindicar a campanha
STATUS_ENVIAVEIS = (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED)

STATUS_TERMINAIS = (CampaignStatus.COMPLETED, CampaignStatus.CANCELLED)


class DeliveryStatus(str, Enum):
    """Status de entrega por destinatario."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class AudienceSegment(str, Enum):
    """Segmentos nomeados de audiencia."""

    ALL = "all"
    ACTIVE = "active"
    NEW_USERS = "new_users"
    AT_RISK = "at_risk"
    CHURNED = "churned"
    POWER_USERS = "power_users"


def _iso(valor: Optional[datetime]) -> Optional[str]:
    return valor.isoformat() if valor else None


@dataclass
class Campaign:
    """Dados de uma campanha de broadcast."""

    id: int
    title: str
    body: str
    status: CampaignStatus = CampaignStatus.DRAFT
    target_user_ids: List[int] = field(default_factory=list)
    target_segment: Optional[AudienceSegment] = None
    scheduled_at: Optional[datetime] = None
    total_recipients: int = 0
    sent_count: int = 0
    failed_count: int = 0
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def has_explicit_targets(self) -> bool:
        return bool(self.target_user_ids)

    @classmethod
    def from_db_row(cls, row: dict) -> "Campaign":
        """Cria a partir de linha do banco."""
        status_raw = row.get("status") or CampaignStatus.DRAFT.value
        try:
            status = CampaignStatus(status_raw)
        except ValueError:
            status = CampaignStatus.DRAFT

        # Segmento desconhecido cai no default do resolver (all)
        segmento = None
        if row.get("target_segment"):
            try:
                segmento = AudienceSegment(row["target_segment"])
            except ValueError:
                segmento = None

        return cls(
            id=row["id"],
            title=row.get("title", ""),
            body=row.get("body", ""),
            status=status,
            target_user_ids=[int(uid) for uid in (row.get("target_user_ids") or [])],
            target_segment=segmento,
            scheduled_at=parse_timestamp(row.get("scheduled_at")),
            total_recipients=row.get("total_recipients") or 0,
            sent_count=row.get("sent_count") or 0,
            failed_count=row.get("failed_count") or 0,
            created_by=row.get("created_by"),
            created_at=parse_timestamp(row.get("created_at")),
            sent_at=parse_timestamp(row.get("sent_at")),
            completed_at=parse_timestamp(row.get("completed_at")),
        )

    def to_dict(self) -> dict:
        """Converte para dicionario."""
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "status": self.status.value,
            "target_user_ids": self.target_user_ids,
            "target_segment": self.target_segment.value if self.target_segment else None,
            "scheduled_at": _iso(self.scheduled_at),
            "total_recipients": self.total_recipients,
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "sent_at": _iso(self.sent_at),
            "completed_at": _iso(self.completed_at),
        }


@dataclass
class Recipient:
    """Linha de destinatario de uma campanha."""

    campaign_id: int
    user_id: int
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "Recipient":
        """Cria a partir de linha do banco."""
        try:
            status = DeliveryStatus(row.get("delivery_status") or "pending")
        except ValueError:
            status = DeliveryStatus.PENDING

        return cls(
            campaign_id=row["broadcast_id"],
            user_id=row["user_id"],
            delivery_status=status,
            error_message=row.get("error_message"),
            sent_at=parse_timestamp(row.get("sent_at")),
        )

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "user_id": self.user_id,
            "delivery_status": self.delivery_status.value,
            "error_message": self.error_message,
            "sent_at": _iso(self.sent_at),
        }


@dataclass
class ActivityProfile:
    """Resumo de atividade de um usuario com endereco de canal."""

    user_id: int
    created_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    events_last_30d: int = 0

    @classmethod
    def from_db_row(cls, row: dict) -> "ActivityProfile":
        return cls(
            user_id=row["user_id"],
            created_at=parse_timestamp(row.get("created_at")),
            last_activity_at=parse_timestamp(row.get("last_activity_at")),
            events_last_30d=row.get("events_last_30d") or 0,
        )


@dataclass
class RecipientCounts:
    """Contagem de destinatarios por status de entrega."""

    pending: int = 0
    sent: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.sent + self.failed

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "pending": self.pending,
            "sent": self.sent,
            "failed": self.failed,
        }


@dataclass
class DispatchTotals:
    """Contadores gravados na campanha ao finalizar ou abortar."""

    total_recipients: int = 0
    sent_count: int = 0
    failed_count: int = 0

    @classmethod
    def from_counts(cls, counts: RecipientCounts) -> "DispatchTotals":
        return cls(
            total_recipients=counts.total,
            sent_count=counts.sent,
            failed_count=counts.failed,
        )

    def to_dict(self) -> dict:
        return {
            "total_recipients": self.total_recipients,
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
        }


@dataclass
class DispatchResult:
    """Resultado de um envio (ou retomada) de campanha."""

    campaign_id: int
    status: CampaignStatus
    totals: DispatchTotals = field(default_factory=DispatchTotals)

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "status": self.status.value,
            **self.totals.to_dict(),
        }


@dataclass
class CampaignPage:
    """Pagina da listagem de campanhas."""

    campaigns: List[Campaign]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    def to_dict(self) -> dict:
        return {
            "campaigns": [c.to_dict() for c in self.campaigns],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
        }


@dataclass
class CampaignDetails:
    """Campanha com contagem ao vivo dos destinatarios."""

    campaign: Campaign
    recipients: RecipientCounts

    def to_dict(self) -> dict:
        data = self.campaign.to_dict()
        data["recipients"] = self.recipients.to_dict()
        return data


@dataclass
class ScheduledRunResult:
    """Resultado de uma rodada do job de campanhas agendadas."""

    found: int = 0
    started: int = 0
    conflicts: int = 0
    failed: int = 0
    results: List[DispatchResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "started": self.started,
            "conflicts": self.conflicts,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }
