from fastapi import APIRouter, Depends, HTTPException
from supabase import AsyncClient

from core.guards import ButtonGuard, DEFAULT_DENIED_TOOLTIP
from core.supabase_helpers import safe_select_one
from dependencies.auth import get_db, get_permission_checker
from models.requirement import ActionState, RequirementCapabilities, RequirementRef
from services.decisions import PermissionChecker

router = APIRouter(
    prefix="/requirements",
    tags=["Requirements"],
)

REQUIREMENT_COLUMNS = "id, title, status, submitter_id, created_by, assignee_id"

assign_button = ButtonGuard(
    permission="requirement.assign",
    disabled_tooltip="Only users who can assign requirements may do this",
)


def _action(name: str, allowed: bool) -> ActionState:
    if allowed:
        return ActionState(action=name)
    return ActionState(action=name, disabled=True, tooltip=DEFAULT_DENIED_TOOLTIP)


# -----------------------------------------------------
# GET /requirements/{requirement_id}/capabilities
# What the current user may do with one requirement
# -----------------------------------------------------
@router.get(
    "/{requirement_id}/capabilities",
    response_model=RequirementCapabilities,
    summary="Per-requirement action availability",
)
async def get_capabilities(
    requirement_id: str,
    checker: PermissionChecker = Depends(get_permission_checker),
    client: AsyncClient = Depends(get_db),
):
    row = await safe_select_one(
        client, "requirements", {"id": requirement_id}, columns=REQUIREMENT_COLUMNS
    )
    if not row:
        raise HTTPException(404, "Requirement not found")

    requirement = RequirementRef(**row)
    can_edit = checker.can_edit(requirement)
    can_delete = checker.can_delete(requirement)
    can_update_status = checker.can_update_status(requirement)

    return RequirementCapabilities(
        requirement_id=requirement.id,
        can_edit=can_edit,
        can_delete=can_delete,
        can_update_status=can_update_status,
        actions=[
            _action("edit", can_edit),
            _action("delete", can_delete),
            _action("update_status", can_update_status),
            assign_button.render(checker.context, ActionState(action="assign")),
        ],
    )
