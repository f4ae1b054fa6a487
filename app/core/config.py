"""
Configurações da aplicação.
Carrega variáveis de ambiente.
"""
import logging
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configurações carregadas do .env"""

    # App
    APP_NAME: str = "Broadcast Engine"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # APP_ENV: "production" | "dev"
    APP_ENV: str = "dev"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    # Redis (flags de cancelamento, lease de dispatch, rate limit)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 2.0

    # Canal de envio: "telegram" (bot local) ou "bridge" (bot em outro host)
    CHANNEL_PROVIDER: str = "telegram"

    # Telegram Bot API
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_URL: str = "https://api.telegram.org"

    # Bridge: host remoto que guarda as credenciais do bot
    # ADMIN_API_SECRET é enviado pelo cliente e validado pelo servidor
    BRIDGE_URL: str = ""
    ADMIN_API_SECRET: str = ""

    # Dispatch
    BROADCAST_MAX_WORKERS: int = 10
    BROADCAST_RATE_PER_SECOND: float = 25.0  # Telegram aceita ~30 msg/s por bot
    BROADCAST_RATE_BURST: int = 25
    BROADCAST_SEND_TIMEOUT_SECONDS: float = 15.0
    BROADCAST_ERROR_MAX_CHARS: int = 500
    BROADCAST_CANCEL_TTL_SECONDS: int = 86400
    BROADCAST_DISPATCH_LEASE_TTL_SECONDS: int = 60
    # Processos que enviam pelo mesmo bot devem compartilhar Redis e chave
    BROADCAST_RATE_LIMIT_KEY: str = "broadcast:ratelimit:bot"

    # CORS - origens permitidas (separadas por vírgula)
    CORS_ORIGINS: str = "*"

    @property
    def is_production(self) -> bool:
        """Retorna True se está em produção (APP_ENV == 'production')."""
        return self.APP_ENV.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Retorna lista de origens CORS permitidas.

        Em produção, deve ser configurado explicitamente.
        """
        if self.CORS_ORIGINS == "*":
            if self.ENVIRONMENT == "production":
                logging.warning(
                    "CORS_ORIGINS='*' em produção. "
                    "Configure origens específicas para maior segurança."
                )
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignora variáveis extras do .env


@lru_cache()
def get_settings() -> Settings:
    """Retorna instância cacheada das configurações."""
    return Settings()


settings = get_settings()
