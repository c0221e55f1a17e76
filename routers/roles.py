from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from dependencies.auth import (
    get_store,
    requires_any_permission,
    requires_permission,
)
from models.role import (
    Role,
    RoleCreate,
    RolePermissionsReplace,
    RoleUpdate,
    RoleUsage,
    RoleWithPermissions,
)
from services.role_permission_store import RolePermissionStore

router = APIRouter(
    prefix="/roles",
    tags=["Roles"],
)


# ============================================================
# Read
# ============================================================
@router.get(
    "/",
    response_model=List[Role],
    summary="List roles",
    dependencies=[Depends(requires_permission("role.view"))],
)
async def list_roles(
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Matches name or description"),
    store: RolePermissionStore = Depends(get_store),
):
    return await store.list_roles(is_active=is_active, search=search)


@router.get(
    "/usage",
    response_model=List[RoleUsage],
    summary="Users per role",
    dependencies=[Depends(requires_permission("role.view"))],
)
async def role_usage(store: RolePermissionStore = Depends(get_store)):
    return await store.role_usage_stats()


@router.get(
    "/name-available",
    summary="Check whether a role name is free",
    dependencies=[Depends(requires_permission("role.view"))],
)
async def role_name_available(
    name: str = Query(..., min_length=1),
    exclude_id: Optional[str] = Query(None),
    store: RolePermissionStore = Depends(get_store),
):
    available = await store.is_role_name_available(name.strip(), exclude_id=exclude_id)
    return {"name": name.strip(), "available": available}


@router.get(
    "/{role_id}",
    response_model=RoleWithPermissions,
    summary="Role with its permissions",
    dependencies=[Depends(requires_permission("role.view"))],
)
async def get_role(role_id: str, store: RolePermissionStore = Depends(get_store)):
    return await store.get_role_with_permissions(role_id)


# ============================================================
# Write
# ============================================================
@router.post(
    "/",
    response_model=RoleWithPermissions,
    status_code=201,
    summary="Create a role",
)
async def create_role(
    payload: RoleCreate,
    context=Depends(requires_permission("role.create")),
    store: RolePermissionStore = Depends(get_store),
):
    return await store.create_role(payload, created_by=context.user.id)


@router.patch(
    "/{role_id}",
    response_model=RoleWithPermissions,
    summary="Update a role",
    dependencies=[Depends(requires_permission("role.edit"))],
)
async def update_role(
    role_id: str,
    payload: RoleUpdate,
    store: RolePermissionStore = Depends(get_store),
):
    return await store.update_role(role_id, payload)


@router.put(
    "/{role_id}/permissions",
    response_model=RoleWithPermissions,
    summary="Replace the full permission set of a role",
    dependencies=[Depends(requires_any_permission(
        ["role.manage", "permission.manage", "user.manage_roles"]
    ))],
)
async def replace_role_permissions(
    role_id: str,
    payload: RolePermissionsReplace,
    store: RolePermissionStore = Depends(get_store),
):
    await store.replace_role_permissions(role_id, payload.permission_ids)
    return await store.get_role_with_permissions(role_id)


@router.delete(
    "/{role_id}",
    summary="Delete a role",
    dependencies=[Depends(requires_permission("role.delete"))],
)
async def delete_role(role_id: str, store: RolePermissionStore = Depends(get_store)):
    await store.delete_role(role_id)
    return {"status": "deleted", "role_id": role_id}
