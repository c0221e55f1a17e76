# routers/health.py

from fastapi import APIRouter

from core.config import settings
from core.events import PERMISSIONS_CHANGED, get_event_bus
from core.supabase_client import ping_supabase

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks Supabase connection + permission table queries
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
async def health_db():
    """
    Verifies Supabase connectivity.
    - Checks if URL + key are configured
    - Attempts to query each permission table
    - Returns row-count + error details per table

    Safe for external health monitors (no auth required).
    """
    try:
        status = await ping_supabase()
        return {
            "service": "Supabase",
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": "Supabase",
            "status": "error",
            "error": str(e),
        }


# -----------------------------------------------------
# GET /health/app
# Simple API health check for uptime monitors
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    """
    Lightweight health check; also reports live permission sessions.
    """
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "permission_subscribers": get_event_bus().subscriber_count(PERMISSIONS_CHANGED),
    }
