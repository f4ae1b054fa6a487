"""
Rotas de health check.

- /health: Liveness basico (sempre 200 se app rodando)
- /health/ready: Readiness (Redis conectado + canal configurado)
"""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.timezone import agora_utc
from app.services.channel import canal_configurado
from app.services.rate_limiter import limiter_envio
from app.services.redis import verificar_conexao_redis

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Verifica se a API esta funcionando.
    Usado para monitoramento e load balancers.
    """
    return {
        "status": "healthy",
        "timestamp": agora_utc().isoformat(),
        "service": "broadcast-engine",
    }


@router.get("/health/ready")
async def readiness_check():
    """
    Verifica se a API esta pronta para enviar broadcasts.

    503 quando alguma dependencia falha, para o orquestrador tirar a
    instancia do balanceamento.
    """
    redis_ok = await verificar_conexao_redis()
    canal_ok = canal_configurado()
    pronto = redis_ok and canal_ok

    if not pronto:
        logger.warning(f"Readiness degradado: redis={redis_ok} canal={canal_ok}")

    return JSONResponse(
        status_code=200 if pronto else 503,
        content={
            "status": "ready" if pronto else "degraded",
            "checks": {
                "redis": "ok" if redis_ok else "error",
                "channel": settings.CHANNEL_PROVIDER if canal_ok else "not_configured",
            },
            "rate_limit": await limiter_envio.status(),
        },
    )
