# models/requirement.py

from typing import List, Optional
from pydantic import BaseModel


class RequirementRef(BaseModel):
    """
    The ownership fields of a requirement row. `created_by` is the
    legacy owner column still present on older rows.
    """
    id: str
    title: Optional[str] = None
    status: Optional[str] = None
    submitter_id: Optional[str] = None
    created_by: Optional[str] = None
    assignee_id: Optional[str] = None


class ActionState(BaseModel):
    """UI descriptor for a single gated action."""
    action: str
    visible: bool = True
    disabled: bool = False
    loading: bool = False
    tooltip: Optional[str] = None


class RequirementCapabilities(BaseModel):
    requirement_id: str
    can_edit: bool
    can_delete: bool
    can_update_status: bool
    actions: List[ActionState] = []
