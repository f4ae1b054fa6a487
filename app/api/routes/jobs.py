"""
Endpoints para jobs disparados por gatilho externo (cron).
"""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.services.broadcasts import broadcast_executor

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = logging.getLogger(__name__)


@router.post("/broadcasts/scheduled")
async def job_broadcasts_agendados():
    """Envia broadcasts agendados cujo horario ja passou."""
    try:
        resultado = await broadcast_executor.process_due_scheduled()
        return JSONResponse({"status": "ok", **resultado.to_dict()})
    except Exception as e:
        logger.error(f"Erro ao processar broadcasts agendados: {e}", exc_info=True)
        return JSONResponse({"status": "error", "message": str(e)}, status_code=500)
