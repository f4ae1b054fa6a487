"""
Configuração de logging estruturado.

Produção: uma linha JSON por evento, com o contexto do dispatch
(campaign_id, user_id, status) como chaves de primeiro nível.
Desenvolvimento: linha legível e colorida, com o mesmo contexto no final.

Uso:
    logger.warning(
        f"[Dispatch] Falha ao enviar campanha {campaign_id}",
        extra={"campaign_id": campaign_id, "user_id": user_id},
    )
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from app.core.config import settings

# Chaves aceitas via extra= e promovidas para o JSON
CONTEXT_FIELDS = ("campaign_id", "user_id", "status", "path", "error_type", "details")

# Libs que poluem o log em INFO
LOGGERS_RUIDOSOS = ("httpx", "httpcore", "hpack", "uvicorn.access", "asyncio")


def extrair_contexto(record: logging.LogRecord) -> dict:
    """Campos de contexto presentes no record."""
    contexto = {}
    for campo in CONTEXT_FIELDS:
        valor = getattr(record, campo, None)
        if valor is not None:
            contexto[campo] = valor
    return contexto


class JSONFormatter(logging.Formatter):
    """Formatter que gera logs em formato JSON para produção."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **extrair_contexto(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Formatter colorido para desenvolvimento."""

    CORES = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        # Copia: o record e compartilhado com outros handlers
        copia = logging.makeLogRecord(record.__dict__)
        cor = self.CORES.get(copia.levelname, "")
        copia.levelname = f"{cor}{copia.levelname}{self.RESET}"

        linha = super().format(copia)
        contexto = extrair_contexto(record)
        if contexto:
            linha += " | " + " ".join(f"{k}={v}" for k, v in contexto.items())
        return linha


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Configura o root logger.

    Args:
        level: Nivel (default: settings.LOG_LEVEL)
        json_logs: Forca JSON (default: ENVIRONMENT == production)
    """
    if level is None:
        level = settings.LOG_LEVEL
    if json_logs is None:
        json_logs = settings.ENVIRONMENT.lower() == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_logs else ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for nome in LOGGERS_RUIDOSOS:
        logging.getLogger(nome).setLevel(logging.WARNING)
