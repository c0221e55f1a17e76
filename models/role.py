# models/role.py

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.permission import Permission


# ===============================================================
# ROLE MODELS
# ===============================================================

class Role(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_system: bool = False
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleWithPermissions(Role):
    permissions: List[Permission] = Field(default_factory=list)


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None
    is_active: bool = True
    permission_ids: List[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """
    `permission_ids`, when given, replaces the whole permission set.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    permission_ids: Optional[List[str]] = None


class RolePermissionsReplace(BaseModel):
    permission_ids: List[str]


class RoleSummary(BaseModel):
    """Flattened role entry returned alongside an effective permission set."""
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_primary: bool = False


class RoleUsage(BaseModel):
    role_id: str
    role_name: str
    user_count: int
    active_user_count: int


# ===============================================================
# USER ↔ ROLE ASSIGNMENT
# ===============================================================

class RoleAssignment(BaseModel):
    id: Optional[str] = None
    user_id: str
    role_id: str
    assigned_by: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


class AssignRoleRequest(BaseModel):
    user_id: str
    role_id: str
    assigned_by: Optional[str] = None


class ClearRolesRequest(BaseModel):
    user_id: str


class AssignmentStatusUpdate(BaseModel):
    is_active: bool
