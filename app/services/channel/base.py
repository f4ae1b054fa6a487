"""
Interface abstrata para canais de envio.

Define o contrato que o dispatcher consome. Cada implementacao
(bot local, bridge remoto) entrega um texto a um endereco de canal
e informa sucesso ou erro tipado, sem levantar exceptions por falha
de entrega.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ChannelType(str, Enum):
    """Tipos de canal suportados."""

    TELEGRAM = "telegram"
    BRIDGE = "bridge"


@dataclass
class SendResult:
    """Resultado do envio de mensagem."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    channel: Optional[str] = None


class ChannelClient(ABC):
    """
    Interface abstrata para canais de envio.

    `send` nunca deve levantar por rejeicao do provedor: o erro vai em
    `SendResult.error`. Exceptions que escaparem (bug, timeout de rede)
    sao tratadas pelo dispatcher como falha de entrega do destinatario.
    """

    channel_type: ChannelType

    @abstractmethod
    async def send(self, address: str, body: str) -> SendResult:
        """
        Envia mensagem de texto.

        Args:
            address: Endereço do destinatário no canal (ex: chat_id do Telegram)
            body: Texto já renderizado

        Returns:
            SendResult com status do envio
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """
        Verifica se o provedor responde.

        Returns:
            True se o canal pode receber envios
        """
        pass
