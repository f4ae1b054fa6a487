"""
Canais de envio - Abstração sobre o provedor de mensagens.

Suporta:
- Telegram Bot API (bot neste host)
- Bridge (bot em outro host, via HTTP autenticado)

Uso:
    from app.services.channel import get_channel_client

    client = get_channel_client()          # ChannelUnavailableError se nao configurado
    result = await client.send("123456", "Olá!")
"""

import logging
from typing import Optional

from app.core.config import settings
from app.core.exceptions import ChannelUnavailableError
from app.services.channel.base import ChannelClient, ChannelType, SendResult
from app.services.channel.bridge import BridgeChannel
from app.services.channel.telegram import TelegramChannel

logger = logging.getLogger(__name__)

__all__ = [
    "ChannelClient",
    "ChannelType",
    "SendResult",
    "TelegramChannel",
    "BridgeChannel",
    "get_channel_client",
    "canal_configurado",
]


def get_channel_client(provider: Optional[str] = None) -> ChannelClient:
    """
    Cria o canal configurado.

    Uma instancia nova por chamada: o dispatcher recebe o client por
    injecao e nao existe handle global compartilhado.

    Args:
        provider: 'telegram' ou 'bridge' (default: settings.CHANNEL_PROVIDER)

    Returns:
        ChannelClient configurado

    Raises:
        ChannelUnavailableError: Se faltam credenciais ou provider desconhecido
    """
    provider = (provider or settings.CHANNEL_PROVIDER).lower()

    if provider == ChannelType.TELEGRAM.value:
        if not settings.TELEGRAM_BOT_TOKEN:
            raise ChannelUnavailableError(
                "TELEGRAM_BOT_TOKEN nao configurado",
                details={"provider": provider},
            )
        return TelegramChannel(bot_token=settings.TELEGRAM_BOT_TOKEN)

    if provider == ChannelType.BRIDGE.value:
        if not settings.BRIDGE_URL or not settings.ADMIN_API_SECRET:
            raise ChannelUnavailableError(
                "BRIDGE_URL e ADMIN_API_SECRET sao obrigatorios para o bridge",
                details={"provider": provider},
            )
        return BridgeChannel(
            base_url=settings.BRIDGE_URL,
            secret=settings.ADMIN_API_SECRET,
        )

    raise ChannelUnavailableError(
        f"Provider desconhecido: {provider}",
        details={"provider": provider},
    )


def canal_configurado(provider: Optional[str] = None) -> bool:
    """Retorna True se o canal pode ser construido (sem chamar o provedor)."""
    try:
        get_channel_client(provider)
        return True
    except ChannelUnavailableError:
        return False
