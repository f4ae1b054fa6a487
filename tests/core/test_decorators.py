"""
Testes do decorator handle_errors.
"""
import pytest

from app.core.decorators import handle_errors
from app.core.exceptions import ConflictError, DatabaseError


class TestHandleErrors:

    @pytest.mark.asyncio
    async def test_retorno_normal(self):
        @handle_errors()
        async def ok():
            return 42

        assert await ok() == 42

    @pytest.mark.asyncio
    async def test_erro_generico_vira_database_error(self):
        @handle_errors()
        async def quebra():
            raise RuntimeError("connection reset")

        with pytest.raises(DatabaseError) as exc_info:
            await quebra()

        assert exc_info.value.details == {"error": "connection reset"}
        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert "quebra" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_exception_do_dominio_passa_direto(self):
        @handle_errors()
        async def conflito():
            raise ConflictError("fora de draft", campaign_id=1, current_status="sending")

        with pytest.raises(ConflictError):
            await conflito()

    @pytest.mark.asyncio
    async def test_sem_reraise_retorna_default(self):
        @handle_errors(default_return=0, reraise=False, log_level="warning")
        async def contar():
            raise RuntimeError("timeout")

        assert await contar() == 0
