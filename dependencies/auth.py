from typing import List, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import AsyncClient

from core.events import EventBus, get_event_bus
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from models.user import User
from services.decisions import PermissionChecker
from services.permission_resolution import PermissionResolutionService
from services.role_permission_store import RolePermissionStore
from services.session_registry import SessionRegistry


bearer_scheme = HTTPBearer()


# ============================================================
# Backing services (overridable in tests)
# ============================================================
async def get_db() -> AsyncClient:
    client = await get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")
    return client


def get_bus() -> EventBus:
    return get_event_bus()


def get_store(
    client: AsyncClient = Depends(get_db),
    bus: EventBus = Depends(get_bus),
) -> RolePermissionStore:
    return RolePermissionStore(client, bus)


def get_resolver(store: RolePermissionStore = Depends(get_store)) -> PermissionResolutionService:
    return PermissionResolutionService(store)


_registry: Optional[SessionRegistry] = None


def get_session_registry(
    resolver: PermissionResolutionService = Depends(get_resolver),
    bus: EventBus = Depends(get_bus),
) -> SessionRegistry:
    """
    One registry per process; created on first use with the resolver of
    that request.
    """
    global _registry
    if _registry is None:
        _registry = SessionRegistry(resolver, bus)
    return _registry


def reset_session_registry():
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None


# ============================================================
# AUTH DECODING (Supabase: validates JWT + loads users row)
# ============================================================
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    client: AsyncClient = Depends(get_db),
    store: RolePermissionStore = Depends(get_store),
) -> User:

    token = credentials.credentials

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    # ---------------------------------------------------------
    # Validate JWT via Supabase GoTrue
    # ---------------------------------------------------------
    try:
        auth_resp = await client.auth.get_user(token)
    except Exception as e:
        logger.info(f"Token rejected by Supabase Auth: {e}")
        raise unauthorized

    if not auth_resp or not auth_resp.user:
        raise unauthorized
    auth_user = auth_resp.user

    # ---------------------------------------------------------
    # Application profile (users table)
    # ---------------------------------------------------------
    user = await store.get_user(auth_user.id)
    if user is not None:
        return user

    # No profile row yet: identity only, resolves to no permissions
    metadata = auth_user.user_metadata or {}
    return User(
        id=auth_user.id,
        email=auth_user.email,
        full_name=metadata.get("full_name"),
        role=metadata.get("role", "employee"),
    )


# ============================================================
# SESSION CONTEXT
# ============================================================
async def get_permission_context(
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    return await registry.get_context(current_user)


def get_permission_checker(context=Depends(get_permission_context)) -> PermissionChecker:
    return PermissionChecker(context)


# ============================================================
# PERMISSION CHECKS (DELEGATE TO core.guards)
# ============================================================
def requires_permission(permission: str):
    """
    Thin wrapper so routes can still import from dependencies.auth.
    Guard logic lives in core.guards.
    """
    from core.guards import requires_permission as guard_dependency
    return guard_dependency(permission)


def requires_any_permission(permissions: List[str]):
    from core.guards import requires_any_permission as guard_dependency
    return guard_dependency(permissions)
