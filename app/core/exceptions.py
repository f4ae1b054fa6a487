"""
Exceptions customizadas do motor de broadcasts.
"""
from typing import Optional


class BroadcastException(Exception):
    """Base exception para todos os erros do sistema."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(BroadcastException):
    """Erro de banco de dados (Supabase)."""
    pass


class ExternalAPIError(BroadcastException):
    """Erro de API externa (Telegram, bridge)."""

    def __init__(
        self,
        message: str,
        service: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.service = service
        super().__init__(message, details, original_error)


class ValidationError(BroadcastException):
    """Erro de validacao de dados de entrada."""
    pass


class NotFoundError(BroadcastException):
    """Recurso nao encontrado."""

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None
    ):
        message = f"{resource} nao encontrado"
        details = {}
        if identifier:
            details["id"] = identifier
        super().__init__(message, details)


class ConflictError(BroadcastException):
    """
    Transicao de estado invalida.

    Levantada quando a campanha nao esta no status esperado
    (ex: send de campanha ja enviada). Nunca e retentada.
    """

    def __init__(
        self,
        message: str,
        campaign_id: Optional[int] = None,
        current_status: Optional[str] = None,
    ):
        details = {}
        if campaign_id is not None:
            details["campaign_id"] = campaign_id
        if current_status:
            details["status"] = current_status
        super().__init__(message, details)


class ChannelUnavailableError(BroadcastException):
    """Canal de envio nao configurado ou inacessivel."""
    pass


class ConfigurationError(BroadcastException):
    """Erro de configuracao do sistema."""
    pass
