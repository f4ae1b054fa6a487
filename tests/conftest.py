"""
Configuração global de testes - Fixtures compartilhadas.

Usage:
    Fixtures aqui definidas são automaticamente disponíveis em todos os testes.
    Para fixtures específicas de módulo, use conftest.py local.
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.services.channel.base import ChannelClient, ChannelType, SendResult


# =============================================================================
# MOCK FACTORIES - Funções para criar mocks configuráveis
# =============================================================================


def criar_mock_supabase(
    dados_retorno: list[dict[str, Any]] | None = None,
    count: int | None = None,
) -> MagicMock:
    """
    Cria mock do cliente Supabase com chain de métodos configurado.

    Args:
        dados_retorno: Lista de dicts que será retornada em .execute().data
        count: Valor de .execute().count (default: len(dados_retorno))

    Returns:
        MagicMock configurado para suportar chain: .table().select().eq().execute()

    Example:
        mock = criar_mock_supabase([{"id": 1, "status": "draft"}])
        mock.table("broadcasts").update({...}).eq("id", 1).in_("status", [...]).execute().data
    """
    mock = MagicMock()
    for metodo in (
        "table", "select", "insert", "update", "upsert", "delete",
        "eq", "neq", "gt", "gte", "lt", "lte", "in_", "is_",
        "order", "limit", "range", "single", "rpc",
    ):
        getattr(mock, metodo).return_value = mock

    response = MagicMock()
    response.data = dados_retorno if dados_retorno is not None else []
    response.count = count if count is not None else len(response.data)
    mock.execute.return_value = response

    return mock


def criar_response(data: list[dict[str, Any]] | None = None, count: int | None = None) -> MagicMock:
    """Resposta avulsa de .execute() para usar com side_effect."""
    response = MagicMock()
    response.data = data if data is not None else []
    response.count = count if count is not None else len(response.data)
    return response


def criar_mock_redis() -> MagicMock:
    """
    Cria mock do cliente Redis (flags, lease e rate limit).

    Returns:
        MagicMock com métodos async mockados (set, exists, delete, ping, eval)
    """
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.exists = AsyncMock(return_value=0)
    mock.ping = AsyncMock(return_value=True)
    mock.aclose = AsyncMock(return_value=None)
    mock.eval = AsyncMock(return_value="0")
    return mock


def criar_mock_http_response(
    status_code: int = 200,
    json_data: dict[str, Any] | list[Any] | None = None,
    text: str = "",
) -> MagicMock:
    """
    Cria mock de resposta HTTP (httpx.Response).

    Args:
        status_code: HTTP status code
        json_data: Dados JSON a retornar
        text: Texto raw da resposta

    Returns:
        MagicMock simulando httpx.Response
    """
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = json_data if json_data is not None else {}
    mock.text = text
    mock.is_success = 200 <= status_code < 300
    mock.is_error = status_code >= 400
    return mock


def criar_campaign_row(**overrides: Any) -> dict[str, Any]:
    """Linha da tabela broadcasts com defaults de um draft."""
    row = {
        "id": 1,
        "title": "Novidade",
        "body": "Temos uma novidade para voce",
        "status": "draft",
        "target_user_ids": [],
        "target_segment": None,
        "scheduled_at": None,
        "total_recipients": 0,
        "sent_count": 0,
        "failed_count": 0,
        "created_by": "operador-1",
        "created_at": "2026-01-20T10:00:00+00:00",
        "sent_at": None,
        "completed_at": None,
    }
    row.update(overrides)
    return row


class FakeChannel(ChannelClient):
    """
    Canal em memoria.

    Args:
        respostas: address -> SendResult (default: sucesso)
        disponivel: retorno de is_available
        atraso: segundos de espera por envio (para testar timeout)
    """

    channel_type = ChannelType.TELEGRAM

    def __init__(
        self,
        respostas: dict[str, SendResult] | None = None,
        disponivel: bool = True,
        atraso: float = 0,
    ):
        self.respostas = respostas or {}
        self.disponivel = disponivel
        self.atraso = atraso
        self.enviados: list[tuple[str, str]] = []

    async def send(self, address: str, body: str) -> SendResult:
        if self.atraso:
            await asyncio.sleep(self.atraso)
        self.enviados.append((address, body))
        return self.respostas.get(address, SendResult(success=True, message_id=f"m-{address}"))

    async def is_available(self) -> bool:
        return self.disponivel


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def mock_supabase_factory():
    """
    Factory para criar mocks de Supabase com dados específicos.

    Uso:
        def test_algo(mock_supabase_factory):
            mock = mock_supabase_factory([{"id": 1}])
    """
    return criar_mock_supabase


@pytest.fixture
def db_response():
    """Factory de respostas de .execute() (para side_effect em sequencia)."""
    return criar_response


@pytest.fixture
def http_response():
    """Factory de respostas httpx mockadas."""
    return criar_mock_http_response


@pytest.fixture
def mock_http_client(http_response):
    """
    Mock do httpx.AsyncClient compartilhado pelos canais.

    Uso:
        def test_envio(mock_http_client, http_response):
            mock_http_client.post.return_value = http_response(200, {"ok": True})
    """
    client = MagicMock()
    client.post = AsyncMock(return_value=http_response())
    client.get = AsyncMock(return_value=http_response())
    with patch("app.services.channel.telegram.get_http_client", AsyncMock(return_value=client)), \
            patch("app.services.channel.bridge.get_http_client", AsyncMock(return_value=client)):
        yield client


@pytest.fixture
def redis_mock_factory():
    """Factory de mocks Redis para patch em outros modulos."""
    return criar_mock_redis


@pytest.fixture
def mock_redis():
    """
    Mock do cliente Redis usado pelas flags de cancelamento.

    Uso:
        def test_cancel(mock_redis):
            mock_redis.exists.return_value = 1
    """
    mock = criar_mock_redis()
    with patch("app.services.broadcasts.cancellation.redis_client", mock):
        yield mock


@pytest.fixture
def campaign_row():
    """Factory de linhas de campanha."""
    return criar_campaign_row


@pytest.fixture
def fake_channel():
    """Factory de canais em memoria."""
    return FakeChannel
