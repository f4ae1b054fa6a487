"""
Testes para exception handlers do FastAPI.
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.error_handlers import register_exception_handlers, status_code_para
from app.core.exceptions import (
    BroadcastException,
    ChannelUnavailableError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    ExternalAPIError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def app_with_handlers():
    """Cria app FastAPI com handlers registrados."""
    app = FastAPI()
    register_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers):
    """Cliente de teste."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestExceptionHandlers:
    """Testes para cada tipo de exception."""

    def test_not_found_error_returns_404(self, app_with_handlers, client):
        @app_with_handlers.get("/test-not-found")
        async def raise_not_found():
            raise NotFoundError("Broadcast", identifier="123")

        response = client.get("/test-not-found")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "NotFoundError"
        assert "nao encontrado" in data["message"]
        assert data["details"]["id"] == "123"

    def test_conflict_error_returns_409(self, app_with_handlers, client):
        @app_with_handlers.get("/test-conflict")
        async def raise_conflict():
            raise ConflictError("Campanha nao pode ser enviada", campaign_id=5, current_status="completed")

        response = client.get("/test-conflict")

        assert response.status_code == 409
        assert response.json()["details"] == {"campaign_id": 5, "status": "completed"}

    def test_unhandled_exception_returns_500(self, app_with_handlers, client):
        @app_with_handlers.get("/test-unhandled")
        async def raise_unhandled():
            raise RuntimeError("Something unexpected")

        response = client.get("/test-unhandled")

        assert response.status_code == 500
        assert response.json()["error"] == "InternalServerError"


class TestStatusCodes:

    @pytest.mark.parametrize("exc,esperado", [
        (ValidationError("x"), 400),
        (ChannelUnavailableError("x"), 503),
        (ExternalAPIError("x", service="telegram"), 502),
        (DatabaseError("x"), 503),
        (ConfigurationError("x"), 500),
        (BroadcastException("x"), 500),
    ])
    def test_mapeamento(self, exc, esperado):
        assert status_code_para(exc) == esperado
