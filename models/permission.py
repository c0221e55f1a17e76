# models/permission.py

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from core.permissions import split_code


# ===============================================================
# PERMISSION MODELS
# ===============================================================

class Permission(BaseModel):
    """
    Mirrors a row of the `permissions` table.

    `conditions` is stored and returned untouched; nothing evaluates it.
    `parent_id` only shapes the display tree and grants nothing.
    """
    id: str
    code: str
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    resource: Optional[str] = None
    action: Optional[str] = None
    conditions: Dict[str, Any] = Field(default_factory=dict)
    is_system: bool = False
    is_active: bool = True
    parent_id: Optional[str] = None
    sort_order: int = 0
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def fill_from_code(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Nullable DB columns come back as None
        if data.get("conditions") is None:
            data["conditions"] = {}
        if data.get("sort_order") is None:
            data["sort_order"] = 0
        code = data.get("code") or ""
        resource, action = split_code(code)
        if not data.get("resource"):
            data["resource"] = resource or None
        if not data.get("action"):
            data["action"] = action or None
        if not data.get("category"):
            data["category"] = resource or None
        return data


class PermissionCreate(BaseModel):
    """
    Admin-entered custom permission. The code is validated against
    the catalog before anything is written.
    """
    code: str
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    conditions: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    parent_id: Optional[str] = None
    sort_order: int = 0


class PermissionUpdate(BaseModel):
    """
    Partial update. The code is the lookup key and is not editable.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    conditions: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None


class PermissionNode(Permission):
    children: List["PermissionNode"] = Field(default_factory=list)


class PermissionCategoryNode(BaseModel):
    """Virtual grouping node used by the admin permission tree."""
    id: str
    code: str
    name: str
    category: str
    children: List[PermissionNode] = Field(default_factory=list)


class PermissionUsage(BaseModel):
    permission_id: str
    permission_code: str
    role_count: int
    user_count: int
