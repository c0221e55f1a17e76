# models/user.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel


# ===============================================================
# APPLICATION USER (public.users)
# ===============================================================

class User(BaseModel):
    """
    Row of the `users` table. `role` is the legacy single-role column,
    kept in sync with user_roles for older clients.
    """
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: Optional[str] = "employee"
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LegacyRoleUpdate(BaseModel):
    role: str
    assigned_by: Optional[str] = None


class UserActiveUpdate(BaseModel):
    active: bool
