# jobs/seed_permissions.py

import asyncio

from core.logging_config import logger
from core.supabase_client import get_supabase_client
from services.role_permission_store import RolePermissionStore


async def seed() -> dict:
    client = await get_supabase_client()
    if not client:
        raise RuntimeError("Supabase not configured")

    store = RolePermissionStore(client)
    summary = await store.seed_catalog()
    logger.info(f"Permission catalog seeded: {summary}")
    return summary


def run():
    """
    CLI entry point: upsert the permission catalog and the built-in roles.
    Safe to run repeatedly.
    """
    return asyncio.run(seed())


if __name__ == "__main__":
    run()
