"""
Cliente Supabase para operacoes de banco de dados.
"""
import logging
from functools import lru_cache

from supabase import create_client, Client

from app.core.config import settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Retorna cliente Supabase cacheado.
    Usa service key para acesso completo.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("SUPABASE_URL e SUPABASE_SERVICE_KEY sao obrigatorios")

    logger.info("Cliente Supabase criado")
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY
    )


class _SupabaseLazy:
    """Adia a criacao do client ate o primeiro uso (import nao exige .env)."""

    def __getattr__(self, nome):
        return getattr(get_supabase_client(), nome)


# Instancia global
supabase = _SupabaseLazy()
