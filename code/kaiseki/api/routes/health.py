import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from kaiseki.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

_session_factory = None


def set_health_deps(session_factory=None) -> None:
    global _session_factory
    _session_factory = session_factory


@router.get("/health")
async def health():
    db_status = "ok"
    healthy = True

    # Check database
    if _session_factory:
        session = _session_factory()
        try:
            await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Health check: DB unreachable: %s", e)
            db_status = "error"
            healthy = False
        finally:
            await session.close()
    else:
        db_status = "not configured"

    settings = get_settings()
    body = {
        "status": "ok" if healthy else "degraded",
        "version": "0.1.0",
        "database": db_status,
        "fflogs": "configured" if settings.fflogs.client_id else "not configured",
        "xivapi": "enabled" if settings.xivapi.enabled else "disabled",
    }
    status_code = 200 if healthy else 503
    return JSONResponse(content=body, status_code=status_code)
