"""
Broadcast Engine - API Principal
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_exception_handlers
from app.api.routes import bridge, broadcasts, health, jobs
from app.core.config import settings
from app.core.logging import setup_logging
from app.services.http_client import close_http_client
from app.services.redis import fechar_redis

# Configurar logging
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia startup e shutdown da aplicação."""
    logger.info(
        f"Iniciando {settings.APP_NAME} (canal={settings.CHANNEL_PROVIDER}, "
        f"workers={settings.BROADCAST_MAX_WORKERS}, "
        f"rate={settings.BROADCAST_RATE_PER_SECOND}/s)"
    )
    yield
    logger.info(f"Encerrando {settings.APP_NAME}...")
    await close_http_client()
    await fechar_redis()


app = FastAPI(
    title=settings.APP_NAME,
    description="Broadcasts de operador para usuarios via Telegram",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Rotas
app.include_router(health.router, tags=["Health"])
app.include_router(broadcasts.router)
app.include_router(jobs.router)
app.include_router(bridge.router)


@app.get("/")
async def root():
    """Endpoint raiz."""
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "docs": "/docs",
    }
