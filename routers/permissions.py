from typing import List
from fastapi import APIRouter, Depends

from core.permissions import PERMISSION_GROUPS, describe
from dependencies.auth import (
    get_current_user,
    get_permission_context,
    get_session_registry,
    get_store,
    requires_permission,
)
from models.permission import (
    Permission,
    PermissionCategoryNode,
    PermissionCreate,
    PermissionUpdate,
    PermissionUsage,
)
from models.user import User
from services.role_permission_store import RolePermissionStore
from services.session_registry import SessionRegistry

router = APIRouter(
    prefix="/permissions",
    tags=["Permissions"],
)


def _context_snapshot(context) -> dict:
    resolved = context.resolved
    return {
        "state": context.state,
        "user_id": context.user.id if context.user else None,
        "mode": context.mode,
        "permissions": sorted(context.permissions),
        "roles": [r.model_dump() for r in context.roles],
        "legacy_role": resolved.legacy_role if resolved else None,
    }


# ============================================================
# Static catalog
# ============================================================
@router.get(
    "/catalog",
    summary="Permission catalog",
    description="Every permission code the application knows about, grouped by category.",
)
async def get_catalog(current_user: User = Depends(get_current_user)):
    return [
        {
            "category": group["category"],
            "name": group["name"],
            "permissions": [
                {"code": code, "description": describe(code)}
                for code in group["permissions"]
            ],
        }
        for group in PERMISSION_GROUPS
    ]


# ============================================================
# Current session
# ============================================================
@router.get("/me", summary="Effective permissions of the current user")
async def get_my_permissions(context=Depends(get_permission_context)):
    return _context_snapshot(context)


@router.post("/me/refresh", summary="Re-resolve the current user's permissions")
async def refresh_my_permissions(context=Depends(get_permission_context)):
    await context.refresh()
    return _context_snapshot(context)


@router.post("/me/sign-out", summary="End the current user's permission session")
async def sign_out(
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """
    Signs the session context out and drops it from the registry. The next
    authenticated request starts a fresh session.
    """
    registry.end_session(current_user.id)
    return {"user_id": current_user.id, "state": "unauthenticated"}


# ============================================================
# Stored permissions
# ============================================================
@router.get(
    "/",
    response_model=List[Permission],
    summary="List stored permissions",
    dependencies=[Depends(requires_permission("permission.view"))],
)
async def list_permissions(store: RolePermissionStore = Depends(get_store)):
    return await store.list_permissions()


@router.get(
    "/tree",
    response_model=List[PermissionCategoryNode],
    summary="Permission tree grouped by category",
    dependencies=[Depends(requires_permission("permission.view"))],
)
async def get_permission_tree(store: RolePermissionStore = Depends(get_store)):
    return await store.get_permission_tree()


@router.get(
    "/categories",
    response_model=List[str],
    summary="Distinct permission categories",
    dependencies=[Depends(requires_permission("permission.view"))],
)
async def list_categories(store: RolePermissionStore = Depends(get_store)):
    return await store.list_permission_categories()


@router.get(
    "/usage",
    response_model=List[PermissionUsage],
    summary="How many roles and users hold each permission",
    dependencies=[Depends(requires_permission("permission.view"))],
)
async def permission_usage(store: RolePermissionStore = Depends(get_store)):
    return await store.permission_usage_stats()


@router.post(
    "/",
    response_model=Permission,
    status_code=201,
    summary="Create a custom permission",
)
async def create_permission(
    payload: PermissionCreate,
    context=Depends(requires_permission("permission.manage")),
    store: RolePermissionStore = Depends(get_store),
):
    return await store.create_permission(payload, created_by=context.user.id)


@router.patch(
    "/{permission_id}",
    response_model=Permission,
    summary="Update a permission (code is not editable)",
    dependencies=[Depends(requires_permission("permission.manage"))],
)
async def update_permission(
    permission_id: str,
    payload: PermissionUpdate,
    store: RolePermissionStore = Depends(get_store),
):
    return await store.update_permission(permission_id, payload)


@router.delete(
    "/{permission_id}",
    summary="Delete a custom permission",
    dependencies=[Depends(requires_permission("permission.manage"))],
)
async def delete_permission(permission_id: str, store: RolePermissionStore = Depends(get_store)):
    await store.delete_permission(permission_id)
    return {"status": "deleted", "permission_id": permission_id}
