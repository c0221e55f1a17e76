# core/supabase_client.py

from typing import Optional

from supabase import acreate_client, AsyncClient
from core.config import settings
from core.logging_config import logger


_client: Optional[AsyncClient] = None


# ============================================================
# Supabase Client Factory (ALWAYS service role)
# ============================================================

async def get_supabase_client() -> Optional[AsyncClient]:
    """
    Returns the shared async Supabase client (SERVICE ROLE KEY).
    REQUIRED for:
        - auth.get_user (token validation)
        - full read/write on the permission tables
        - the update_role_permissions_tx procedure
    """
    global _client

    if _client is not None:
        return _client

    try:
        supabase_url = settings.SUPABASE_URL
        supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY  # MUST be service-role

        if not supabase_url or not supabase_key:
            logger.error("Missing Supabase credentials")
            logger.error(f"   URL: {supabase_url}")
            logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
            return None

        _client = await acreate_client(supabase_url, supabase_key)
        return _client

    except Exception as e:
        logger.error(f"Supabase Init Error: {e}", exc_info=True)
        return None


def reset_supabase_client():
    """Drop the cached client (tests, credential rotation)."""
    global _client
    _client = None


# ============================================================
# Ping Supabase for health checks
# ============================================================

PERMISSION_TABLES = ["permissions", "roles", "role_permissions", "user_roles"]


async def ping_supabase() -> dict:
    """
    Simple connectivity check over the permission tables.
    """
    try:
        client = await get_supabase_client()
        if client is None:
            return {"service": "Supabase", "status": "not_configured"}

        results = {}

        for t in PERMISSION_TABLES:
            try:
                res = await client.table(t).select("*").limit(1).execute()
                results[t] = {
                    "status": "ok",
                    "rows_found": len(res.data or [])
                }
            except Exception as err:
                results[t] = {"status": "error", "detail": str(err)}

        return {
            "service": "Supabase",
            "status": "ok",
            "tables": results,
        }

    except Exception as e:
        logger.error(f"Supabase Ping Error: {e}", exc_info=True)
        return {"service": "Supabase", "status": "error", "detail": str(e)}
