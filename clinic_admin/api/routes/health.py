from fastapi import APIRouter, Request
from datetime import datetime, timezone
import logging

from ...core.database import ping_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Registered only when DEBUG is enabled
debug_router = APIRouter(tags=["Debug"])

def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()

@router.get("/")
async def root():
    """Basic liveness check."""
    return {
        "status": "ok",
        "message": "Clinic agenda backend is running",
        "timestamp": _timestamp()
    }

@router.get("/health")
async def health_check(request: Request):
    """Health check including database connectivity.

    Always answers 200 so an unavailable database does not get the
    container restarted; the body reports the degraded state instead.
    """
    try:
        ping_db(request.app.state.engine)
    except Exception as e:
        logger.warning(f"Health check: database unavailable ({type(e).__name__})")
        return {
            "status": "degraded",
            "database": "unavailable",
            "message": "Server is up, waiting for the database",
            "timestamp": _timestamp()
        }

    return {
        "status": "healthy",
        "database": "connected",
        "timestamp": _timestamp()
    }

@debug_router.get("/debug/config", include_in_schema=False)
async def debug_config(request: Request):
    """Which configuration variables are set; values are never shown."""
    return request.app.state.settings.summary()
