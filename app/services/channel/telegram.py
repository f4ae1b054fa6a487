"""
Canal Telegram (Bot API).

Envia mensagens direto pelo bot deste host. O endereco de canal e o
chat_id do usuario (users.telegram_id).
"""

import logging

from app.core.config import settings
from app.services.channel.base import ChannelClient, ChannelType, SendResult
from app.services.http_client import get_http_client

logger = logging.getLogger(__name__)


class TelegramChannel(ChannelClient):
    """Canal via Telegram Bot API."""

    channel_type = ChannelType.TELEGRAM

    def __init__(self, bot_token: str, api_url: str = None):
        """
        Inicializa canal Telegram.

        Args:
            bot_token: Token do bot (BotFather)
            api_url: URL base da Bot API (default: settings.TELEGRAM_API_URL)
        """
        self.bot_token = bot_token
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip("/")

    def _url(self, metodo: str) -> str:
        return f"{self.api_url}/bot{self.bot_token}/{metodo}"

    async def send(self, address: str, body: str) -> SendResult:
        """Envia mensagem de texto via sendMessage."""
        try:
            client = await get_http_client()
            response = await client.post(
                self._url("sendMessage"),
                json={
                    "chat_id": address,
                    "text": body,
                    "parse_mode": "Markdown",
                },
            )

            data = response.json()

            if response.status_code == 200 and data.get("ok"):
                message_id = data.get("result", {}).get("message_id")
                return SendResult(
                    success=True,
                    message_id=str(message_id) if message_id is not None else None,
                    channel=self.channel_type.value,
                )

            # Ex: "Forbidden: bot was blocked by the user"
            descricao = data.get("description") or response.text
            logger.warning(f"[Telegram] Envio rejeitado: {response.status_code} - {descricao}")
            return SendResult(
                success=False,
                error=f"Telegram {response.status_code}: {descricao}",
                channel=self.channel_type.value,
            )

        except Exception as e:
            logger.error(f"[Telegram] Exceção ao enviar texto: {e}")
            return SendResult(
                success=False,
                error=str(e) or e.__class__.__name__,
                channel=self.channel_type.value,
            )

    async def is_available(self) -> bool:
        """Verifica token via getMe."""
        try:
            client = await get_http_client()
            response = await client.get(self._url("getMe"))
            if response.status_code != 200:
                logger.warning(f"[Telegram] getMe retornou {response.status_code}")
                return False
            return bool(response.json().get("ok"))

        except Exception as e:
            logger.error(f"[Telegram] Bot API inacessível: {e}")
            return False
