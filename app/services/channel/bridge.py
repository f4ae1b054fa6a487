"""
Canal bridge: delega o envio para o host que guarda as credenciais do bot.

Usado quando o console de operacao roda em outro processo/host. Cada
envio vira um POST autenticado em `/bridge/send-message` no host remoto.
O bridge nao deduplica: chamar duas vezes envia duas vezes.
"""

import logging

from app.services.channel.base import ChannelClient, ChannelType, SendResult
from app.services.http_client import get_http_client

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Admin-API-Secret"


class BridgeChannel(ChannelClient):
    """Canal via bridge HTTP autenticado por segredo compartilhado."""

    channel_type = ChannelType.BRIDGE

    def __init__(self, base_url: str, secret: str):
        """
        Inicializa canal bridge.

        Args:
            base_url: URL base do host remoto
            secret: Segredo compartilhado (ADMIN_API_SECRET)
        """
        self.base_url = base_url.rstrip("/")
        self.secret = secret

    @property
    def headers(self) -> dict:
        """Headers padrão para requisições."""
        return {
            SECRET_HEADER: self.secret,
            "Content-Type": "application/json",
        }

    async def send(self, address: str, body: str) -> SendResult:
        """Envia mensagem pelo host remoto."""
        try:
            client = await get_http_client()
            response = await client.post(
                f"{self.base_url}/bridge/send-message",
                headers=self.headers,
                json={"address": address, "message": body},
            )

            if response.status_code == 200:
                data = response.json()
                if data.get("success"):
                    return SendResult(
                        success=True,
                        message_id=data.get("message_id"),
                        channel=self.channel_type.value,
                    )
                erro = data.get("error") or "bridge retornou success=false"
            else:
                erro = _extrair_erro(response)

            logger.warning(f"[Bridge] Envio rejeitado: {response.status_code} - {erro}")
            return SendResult(
                success=False,
                error=f"Bridge {response.status_code}: {erro}",
                channel=self.channel_type.value,
            )

        except Exception as e:
            logger.error(f"[Bridge] Exceção ao enviar: {e}")
            return SendResult(
                success=False,
                error=str(e) or e.__class__.__name__,
                channel=self.channel_type.value,
            )

    async def is_available(self) -> bool:
        """Verifica saude do host remoto e validade do segredo."""
        try:
            client = await get_http_client()
            response = await client.get(
                f"{self.base_url}/bridge/health",
                headers=self.headers,
            )
            if response.status_code != 200:
                logger.warning(f"[Bridge] Health retornou {response.status_code}")
                return False
            return bool(response.json().get("channel_ready"))

        except Exception as e:
            logger.error(f"[Bridge] Host remoto inacessível: {e}")
            return False


def _extrair_erro(response) -> str:
    """Extrai mensagem de erro de resposta nao-200."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("error") or data.get("message") or response.text
    return response.text
