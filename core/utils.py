# core/utils.py

from datetime import datetime, timezone


def sanitize(data: dict) -> dict:
    """
    Sanitize dictionary data before it is written:
    - Empty strings → None
    - Strip string whitespace
    - Preserve booleans, None values, lists and dicts
    """
    clean = {}

    for k, v in data.items():
        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped if stripped else None
            continue

        clean[k] = v

    return clean


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def read_field(resource, field: str):
    """
    Read `field` from a mapping or an object; missing → None.
    """
    if resource is None:
        return None
    if isinstance(resource, dict):
        return resource.get(field)
    return getattr(resource, field, None)
