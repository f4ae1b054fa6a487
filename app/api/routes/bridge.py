"""
Bridge RPC: lado servidor.

Roda no host que guarda o token do bot. O console de outro host envia
por aqui (BridgeChannel) autenticando com X-Admin-API-Secret.

O envio local e sempre pelo Telegram: o servidor do bridge nunca
encaminha para outro bridge.
"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, PositiveInt, model_validator

from app.core.config import settings
from app.core.exceptions import ChannelUnavailableError
from app.services.broadcasts import (
    CampaignStatus,
    audience_repository,
    broadcast_executor,
    campaign_store,
)
from app.services.channel import ChannelType, get_channel_client
from app.services.channel.bridge import SECRET_HEADER

logger = logging.getLogger(__name__)


async def verificar_segredo(
    x_admin_api_secret: Optional[str] = Header(None, alias=SECRET_HEADER),
) -> None:
    """Valida o segredo compartilhado do bridge."""
    esperado = settings.ADMIN_API_SECRET
    if not esperado:
        raise HTTPException(503, "ADMIN_API_SECRET nao configurado")
    if not x_admin_api_secret or not hmac.compare_digest(x_admin_api_secret, esperado):
        logger.warning("[Bridge] Segredo invalido")
        raise HTTPException(403, "Segredo invalido")


router = APIRouter(
    prefix="/bridge",
    tags=["bridge"],
    dependencies=[Depends(verificar_segredo)],
)


class SendMessageRequest(BaseModel):
    user_id: Optional[PositiveInt] = None
    address: Optional[str] = None
    message: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def exige_destino(self) -> "SendMessageRequest":
        if self.user_id is None and not self.address:
            raise ValueError("informe user_id ou address")
        return self


def _falha(status_code: int, erro: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": erro})


@router.post("/broadcasts/{campaign_id}/send")
async def bridge_enviar_broadcast(campaign_id: int):
    """
    Envia broadcast neste host.

    Campanha em sending e retomada (so os pending); draft/scheduled
    recebe envio completo. 409 se o envio ainda estiver rodando.
    """
    campaign = await campaign_store.get(campaign_id)

    if campaign.status == CampaignStatus.SENDING:
        resultado = await broadcast_executor.resume(campaign_id)
    else:
        resultado = await broadcast_executor.send(campaign_id)

    return resultado.to_dict()


@router.post("/send-message")
async def bridge_enviar_mensagem(dados: SendMessageRequest):
    """Envia uma mensagem pelo bot local."""
    address = dados.address
    if dados.user_id is not None:
        enderecos = await audience_repository.get_addresses([dados.user_id])
        if dados.user_id not in enderecos:
            return _falha(404, f"usuario {dados.user_id} nao encontrado")
        address = enderecos[dados.user_id]
        if not address:
            return _falha(400, "no channel address")

    client = get_channel_client(ChannelType.TELEGRAM.value)
    result = await client.send(address, dados.message)

    if not result.success:
        return _falha(400, result.error or "envio rejeitado")

    return {"success": True, "message_id": result.message_id}


@router.get("/health")
async def bridge_health():
    """Informa se o bot local responde."""
    try:
        client = get_channel_client(ChannelType.TELEGRAM.value)
        pronto = await client.is_available()
    except ChannelUnavailableError as e:
        logger.warning(f"[Bridge] Canal local indisponivel: {e.message}")
        pronto = False

    return {"status": "ok", "channel_ready": pronto}
