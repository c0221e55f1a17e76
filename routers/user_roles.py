from typing import List
from fastapi import APIRouter, Depends

from core.logging_config import logger
from dependencies.auth import get_store, requires_any_permission
from models.role import (
    AssignmentStatusUpdate,
    AssignRoleRequest,
    ClearRolesRequest,
    RoleAssignment,
)
from models.user import LegacyRoleUpdate, User, UserActiveUpdate
from services.role_permission_store import RolePermissionStore

# Every route here manages other users' roles
manage_user_roles = requires_any_permission(["user.manage_roles", "role.assign"])

router = APIRouter(
    prefix="/admin/user-roles",
    tags=["Admin: User Roles"],
)


# ============================================================
# Read
# ============================================================
@router.get(
    "/{user_id}",
    response_model=List[RoleAssignment],
    summary="Role assignments of a user",
    dependencies=[Depends(manage_user_roles)],
)
async def get_user_roles(
    user_id: str,
    active_only: bool = False,
    store: RolePermissionStore = Depends(get_store),
):
    return await store.get_user_role_assignments(user_id, active_only=active_only)


# ============================================================
# Assignments
# ============================================================
@router.post(
    "/assign",
    response_model=RoleAssignment,
    status_code=201,
    summary="Assign a role to a user",
)
async def assign_role(
    payload: AssignRoleRequest,
    context=Depends(manage_user_roles),
    store: RolePermissionStore = Depends(get_store),
):
    assigned_by = payload.assigned_by or context.user.id
    return await store.assign_role(payload.user_id, payload.role_id, assigned_by=assigned_by)


@router.post(
    "/clear",
    summary="Remove every role of a user",
)
async def clear_roles(
    payload: ClearRolesRequest,
    context=Depends(manage_user_roles),
    store: RolePermissionStore = Depends(get_store),
):
    await store.clear_roles(payload.user_id)
    logger.info(f"User {context.user.id} cleared all roles of user {payload.user_id}")
    return {"status": "cleared", "user_id": payload.user_id}


@router.delete(
    "/{user_id}/{role_id}",
    summary="Remove one role from a user",
    dependencies=[Depends(manage_user_roles)],
)
async def remove_role(user_id: str, role_id: str, store: RolePermissionStore = Depends(get_store)):
    await store.remove_role(user_id, role_id)
    return {"status": "removed", "user_id": user_id, "role_id": role_id}


@router.patch(
    "/{user_id}/{role_id}",
    summary="Activate or deactivate one assignment",
    dependencies=[Depends(manage_user_roles)],
)
async def set_assignment_active(
    user_id: str,
    role_id: str,
    payload: AssignmentStatusUpdate,
    store: RolePermissionStore = Depends(get_store),
):
    await store.set_assignment_active(user_id, role_id, payload.is_active)
    return {"user_id": user_id, "role_id": role_id, "is_active": payload.is_active}


# ============================================================
# Users table
# ============================================================
@router.put(
    "/{user_id}/legacy-role",
    response_model=User,
    summary="Set the legacy role and the matching assignment",
)
async def set_legacy_role(
    user_id: str,
    payload: LegacyRoleUpdate,
    context=Depends(manage_user_roles),
    store: RolePermissionStore = Depends(get_store),
):
    assigned_by = payload.assigned_by or context.user.id
    return await store.set_legacy_role(user_id, payload.role, assigned_by=assigned_by)


@router.put(
    "/{user_id}/active",
    response_model=User,
    summary="Activate or deactivate a user",
    dependencies=[Depends(manage_user_roles)],
)
async def set_user_active(
    user_id: str,
    payload: UserActiveUpdate,
    store: RolePermissionStore = Depends(get_store),
):
    return await store.set_user_active(user_id, payload.active)
