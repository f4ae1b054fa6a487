"""
Testes para TelegramChannel.
"""

import httpx
import pytest

from app.services.channel.base import ChannelType
from app.services.channel.telegram import TelegramChannel


@pytest.fixture
def canal():
    """Canal Telegram com token de teste."""
    return TelegramChannel(bot_token="123:abc", api_url="https://api.telegram.test/")


class TestSetup:
    """Montagem de URLs."""

    def test_tipo(self, canal):
        assert canal.channel_type == ChannelType.TELEGRAM

    def test_url_metodo(self, canal):
        assert canal._url("sendMessage") == "https://api.telegram.test/bot123:abc/sendMessage"


class TestSend:
    """Envio via sendMessage."""

    @pytest.mark.asyncio
    async def test_sucesso(self, canal, mock_http_client, http_response):
        mock_http_client.post.return_value = http_response(
            200, {"ok": True, "result": {"message_id": 42}}
        )

        result = await canal.send("5551234", "*Titulo*\n\nCorpo")

        assert result.success is True
        assert result.message_id == "42"
        assert result.channel == "telegram"

        _, kwargs = mock_http_client.post.call_args
        assert kwargs["json"] == {
            "chat_id": "5551234",
            "text": "*Titulo*\n\nCorpo",
            "parse_mode": "Markdown",
        }

    @pytest.mark.asyncio
    async def test_rejeicao_retorna_descricao(self, canal, mock_http_client, http_response):
        mock_http_client.post.return_value = http_response(
            403, {"ok": False, "description": "Forbidden: bot was blocked by the user"}
        )

        result = await canal.send("5551234", "oi")

        assert result.success is False
        assert result.error == "Telegram 403: Forbidden: bot was blocked by the user"

    @pytest.mark.asyncio
    async def test_excecao_de_rede_vira_falha(self, canal, mock_http_client):
        mock_http_client.post.side_effect = httpx.ConnectError("connection refused")

        result = await canal.send("5551234", "oi")

        assert result.success is False
        assert "connection refused" in result.error


class TestIsAvailable:
    """Health via getMe."""

    @pytest.mark.asyncio
    async def test_token_valido(self, canal, mock_http_client, http_response):
        mock_http_client.get.return_value = http_response(200, {"ok": True, "result": {"id": 1}})

        assert await canal.is_available() is True
        mock_http_client.get.assert_awaited_once_with("https://api.telegram.test/bot123:abc/getMe")

    @pytest.mark.asyncio
    async def test_token_invalido(self, canal, mock_http_client, http_response):
        mock_http_client.get.return_value = http_response(401, {"ok": False})

        assert await canal.is_available() is False

    @pytest.mark.asyncio
    async def test_api_inacessivel(self, canal, mock_http_client):
        mock_http_client.get.side_effect = httpx.ConnectTimeout("timeout")

        assert await canal.is_available() is False
