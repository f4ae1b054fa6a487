"""
Testes do servidor do bridge.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.error_handlers import register_exception_handlers
from app.api.routes.bridge import router
from app.core.exceptions import ChannelUnavailableError, ConflictError
from app.services.broadcasts.types import (
    Campaign,
    CampaignStatus,
    DispatchResult,
    DispatchTotals,
)
from app.services.channel.base import SendResult

SEGREDO = "segredo-bridge"
HEADERS = {"X-Admin-API-Secret": SEGREDO}


@pytest.fixture
def client():
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)
    with patch("app.api.routes.bridge.settings") as mock_settings:
        mock_settings.ADMIN_API_SECRET = SEGREDO
        yield TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def canal():
    mock = MagicMock()
    mock.send = AsyncMock(return_value=SendResult(success=True, message_id="55"))
    mock.is_available = AsyncMock(return_value=True)
    with patch("app.api.routes.bridge.get_channel_client", return_value=mock) as factory:
        mock.factory = factory
        yield mock


@pytest.fixture
def mock_audience():
    with patch("app.api.routes.bridge.audience_repository") as mock:
        mock.get_addresses = AsyncMock(return_value={})
        yield mock


class TestAutenticacao:

    def test_sem_header_e_403(self, client, canal):
        response = client.get("/bridge/health")
        assert response.status_code == 403

    def test_segredo_errado_e_403(self, client, canal):
        response = client.get("/bridge/health", headers={"X-Admin-API-Secret": "outro"})
        assert response.status_code == 403

    def test_sem_segredo_configurado_e_503(self, canal):
        app = FastAPI()
        app.include_router(router)
        with patch("app.api.routes.bridge.settings") as mock_settings:
            mock_settings.ADMIN_API_SECRET = ""
            response = TestClient(app).get("/bridge/health", headers=HEADERS)

        assert response.status_code == 503


class TestHealth:

    def test_canal_pronto(self, client, canal):
        response = client.get("/bridge/health", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "channel_ready": True}
        canal.factory.assert_called_once_with("telegram")

    def test_token_ausente(self, client):
        with patch(
            "app.api.routes.bridge.get_channel_client",
            side_effect=ChannelUnavailableError("TELEGRAM_BOT_TOKEN nao configurado"),
        ):
            response = client.get("/bridge/health", headers=HEADERS)

        assert response.json()["channel_ready"] is False


class TestSendMessage:

    def test_por_address(self, client, canal):
        response = client.post(
            "/bridge/send-message", headers=HEADERS, json={"address": "123", "message": "oi"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message_id": "55"}
        canal.send.assert_awaited_once_with("123", "oi")

    def test_por_user_id(self, client, canal, mock_audience):
        mock_audience.get_addresses.return_value = {9: "900"}

        response = client.post(
            "/bridge/send-message", headers=HEADERS, json={"user_id": 9, "message": "oi"}
        )

        assert response.status_code == 200
        canal.send.assert_awaited_once_with("900", "oi")

    def test_usuario_inexistente_e_404(self, client, canal, mock_audience):
        response = client.post(
            "/bridge/send-message", headers=HEADERS, json={"user_id": 9, "message": "oi"}
        )

        assert response.status_code == 404
        assert response.json()["success"] is False
        canal.send.assert_not_called()

    def test_usuario_sem_endereco_e_400(self, client, canal, mock_audience):
        mock_audience.get_addresses.return_value = {9: None}

        response = client.post(
            "/bridge/send-message", headers=HEADERS, json={"user_id": 9, "message": "oi"}
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "no channel address"}

    def test_rejeicao_do_canal_e_400(self, client, canal):
        canal.send.return_value = SendResult(success=False, error="Telegram 400: chat not found")

        response = client.post(
            "/bridge/send-message", headers=HEADERS, json={"address": "1", "message": "oi"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Telegram 400: chat not found"

    def test_sem_destino_e_422(self, client, canal):
        response = client.post("/bridge/send-message", headers=HEADERS, json={"message": "oi"})
        assert response.status_code == 422


class TestBroadcastSend:

    @pytest.fixture
    def mocks(self):
        resultado = DispatchResult(3, CampaignStatus.COMPLETED, DispatchTotals(2, 2, 0))
        with patch("app.api.routes.bridge.campaign_store") as store, \
                patch("app.api.routes.bridge.broadcast_executor") as executor:
            executor.send = AsyncMock(return_value=resultado)
            executor.resume = AsyncMock(return_value=resultado)
            yield store, executor

    def test_draft_envia(self, client, mocks):
        store, executor = mocks
        store.get = AsyncMock(return_value=Campaign(id=3, title="t", body="b"))

        response = client.post("/bridge/broadcasts/3/send", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        executor.send.assert_awaited_once_with(3)
        executor.resume.assert_not_called()

    def test_sending_retoma(self, client, mocks):
        store, executor = mocks
        store.get = AsyncMock(
            return_value=Campaign(id=3, title="t", body="b", status=CampaignStatus.SENDING)
        )

        client.post("/bridge/broadcasts/3/send", headers=HEADERS)

        executor.resume.assert_awaited_once_with(3)
        executor.send.assert_not_called()

    def test_retomada_com_envio_rodando_e_409(self, client, mocks):
        store, executor = mocks
        store.get = AsyncMock(
            return_value=Campaign(id=3, title="t", body="b", status=CampaignStatus.SENDING)
        )
        executor.resume.side_effect = ConflictError(
            "Campanha 3 ja esta sendo enviada", campaign_id=3, current_status="sending"
        )

        response = client.post("/bridge/broadcasts/3/send", headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["details"] == {"campaign_id": 3, "status": "sending"}
