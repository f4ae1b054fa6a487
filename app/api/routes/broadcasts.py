"""
Rotas do console de broadcasts.

A rota so conhece HTTP: valida a entrada, chama store/executor e
serializa. Erros do dominio viram status pelos exception handlers.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field, PositiveInt, field_validator

from app.services.broadcasts import (
    AudienceSegment,
    CampaignStatus,
    DeliveryStatus,
    broadcast_executor,
    campaign_store,
    recipient_repository,
)

router = APIRouter(prefix="/broadcasts", tags=["broadcasts"])


class CriarBroadcastRequest(BaseModel):
    """Schema de entrada para criacao de broadcast."""

    title: str = Field(..., min_length=1, max_length=200, description="Titulo (negrito)")
    body: str = Field(..., min_length=1, max_length=4000, description="Corpo da mensagem")
    target_user_ids: Optional[List[PositiveInt]] = Field(
        default=None, description="Usuarios explicitos (tem precedencia sobre o segmento)"
    )
    target_segment: Optional[AudienceSegment] = Field(
        default=None, description="Segmento nomeado (default: all)"
    )
    scheduled_at: Optional[datetime] = Field(None, description="Agendar envio para")
    created_by: Optional[str] = Field(None, description="Operador")

    @field_validator("title", "body")
    @classmethod
    def nao_vazio(cls, valor: str) -> str:
        if not valor.strip():
            raise ValueError("nao pode ser vazio")
        return valor


class AgendarBroadcastRequest(BaseModel):
    scheduled_at: datetime


@router.post("", status_code=status.HTTP_201_CREATED)
async def criar_broadcast(dados: CriarBroadcastRequest):
    """Cria broadcast em draft (ou scheduled, se vier scheduled_at)."""
    campaign = await campaign_store.create(
        title=dados.title,
        body=dados.body,
        target_user_ids=dados.target_user_ids,
        target_segment=dados.target_segment,
        created_by=dados.created_by,
    )

    if dados.scheduled_at:
        campaign = await campaign_store.schedule(campaign.id, dados.scheduled_at)

    return campaign.to_dict()


@router.get("")
async def listar_broadcasts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[CampaignStatus] = None,
):
    """Lista broadcasts, mais recentes primeiro."""
    pagina = await campaign_store.list(status=status, page=page, limit=limit)
    return pagina.to_dict()


@router.get("/{campaign_id}")
async def buscar_broadcast(campaign_id: int):
    """Broadcast com contagem ao vivo de destinatarios."""
    detalhes = await campaign_store.get_details(campaign_id)
    return detalhes.to_dict()


@router.post("/{campaign_id}/schedule")
async def agendar_broadcast(campaign_id: int, dados: AgendarBroadcastRequest):
    campaign = await campaign_store.schedule(campaign_id, dados.scheduled_at)
    return campaign.to_dict()


@router.post("/{campaign_id}/send")
async def enviar_broadcast(campaign_id: int):
    """
    Envia o broadcast e retorna o resultado consolidado.

    409 se a campanha ja foi reivindicada, 503 se o canal estiver fora.
    """
    resultado = await broadcast_executor.send(campaign_id)
    return resultado.to_dict()


@router.post("/{campaign_id}/cancel", status_code=status.HTTP_202_ACCEPTED)
async def cancelar_broadcast(campaign_id: int):
    """Sinaliza cancelamento; os workers param antes do proximo envio."""
    await broadcast_executor.request_cancel(campaign_id)
    return {"campaign_id": campaign_id, "cancel_requested": True}


@router.get("/{campaign_id}/recipients")
async def listar_destinatarios(
    campaign_id: int,
    status: Optional[DeliveryStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    destinatarios = await recipient_repository.list(
        campaign_id, status=status, page=page, limit=limit
    )
    return {
        "campaign_id": campaign_id,
        "page": page,
        "limit": limit,
        "recipients": [r.to_dict() for r in destinatarios],
    }
