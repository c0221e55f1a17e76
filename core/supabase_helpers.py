# core/supabase_helpers.py

from typing import Any, Iterable, Optional

from core.errors import StoreUnavailable, extract_supabase_error
from core.logging_config import logger
from core.utils import sanitize


# =================================================================
#  SAFE SELECT / INSERT / UPDATE / DELETE / RPC
# =================================================================
# Every call goes through safe_execute, which turns transport and
# PostgREST failures (timeouts included) into StoreUnavailable.
# =================================================================

async def safe_execute(query, operation: str) -> Any:
    try:
        result = await query.execute()
    except Exception as e:
        logger.error(f"{operation}: {extract_supabase_error(e)}")
        raise StoreUnavailable(operation, e) from e

    if result is None:
        raise StoreUnavailable(operation)

    return result.data


async def safe_select(
    client,
    table: str,
    filters: Optional[dict] = None,
    *,
    columns: str = "*",
    in_filters: Optional[dict] = None,
    order_by: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
) -> list:
    """Equality + "in" filtered SELECT."""
    query = client.table(table).select(columns)
    for key, val in (filters or {}).items():
        query = query.eq(key, val)
    for key, values in (in_filters or {}).items():
        query = query.in_(key, list(values))
    for column in order_by or []:
        query = query.order(column)
    if limit is not None:
        query = query.limit(limit)

    data = await safe_execute(query, f"Failed to fetch from {table}")
    return data or []


async def safe_select_one(client, table: str, filters: dict, *, columns: str = "*") -> Optional[dict]:
    rows = await safe_select(client, table, filters, columns=columns, limit=1)
    return rows[0] if rows else None


async def safe_insert(client, table: str, data):
    """INSERT one row (dict) or many (list of dicts)."""
    if isinstance(data, list):
        cleaned = [sanitize(row) for row in data]
    else:
        cleaned = sanitize(data)

    rows = await safe_execute(
        client.table(table).insert(cleaned),
        f"Failed to insert into {table}",
    )
    if isinstance(data, list):
        return rows or []
    return rows[0] if rows else None


async def safe_upsert(client, table: str, data, *, on_conflict: str):
    rows = await safe_execute(
        client.table(table).upsert(data, on_conflict=on_conflict),
        f"Failed to upsert into {table}",
    )
    return rows or []


async def safe_update(client, table: str, filters: dict, data: dict) -> Optional[dict]:
    query = client.table(table).update(sanitize(data))
    for key, val in filters.items():
        query = query.eq(key, val)

    rows = await safe_execute(query, f"Failed to update {table}")
    return rows[0] if rows else None


async def safe_delete(client, table: str, filters: dict) -> list:
    query = client.table(table).delete()
    for key, val in filters.items():
        query = query.eq(key, val)

    rows = await safe_execute(query, f"Failed to delete from {table}")
    return rows or []


async def safe_rpc(client, function: str, params: dict) -> Any:
    return await safe_execute(
        client.rpc(function, params),
        f"Procedure {function} failed",
    )
