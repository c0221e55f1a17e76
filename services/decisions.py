# services/decisions.py

"""
Resource-aware authorization predicates.

Every decision is one rule:

    global permission  OR  (acting user owns the resource AND scoped permission)

Denial is always a False return, never an exception.
"""

from typing import Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from core.permissions import PERMISSIONS
from core.roles import SUPER_ADMIN
from core.utils import read_field


class ResourceRule(BaseModel):
    """
    Where a resource type keeps its identity fields. Owner fields are
    tried in order; any match counts.
    """
    model_config = ConfigDict(frozen=True)

    resource: str
    owner_fields: Tuple[str, ...] = ("created_by",)
    assignee_fields: Tuple[str, ...] = ()

    def code(self, action: str) -> str:
        return f"{self.resource}.{action}"


RESOURCE_RULES: Dict[str, ResourceRule] = {
    "requirement": ResourceRule(
        resource="requirement",
        owner_fields=("submitter_id", "created_by"),
        assignee_fields=("assignee_id",),
    ),
    "comment": ResourceRule(
        resource="comment",
        owner_fields=("user_id", "created_by"),
    ),
}


def register_resource_rule(rule: ResourceRule) -> ResourceRule:
    RESOURCE_RULES[rule.resource] = rule
    return rule


def get_resource_rule(resource_type: str) -> ResourceRule:
    rule = RESOURCE_RULES.get(resource_type)
    if rule is None:
        raise KeyError(f"No resource rule registered for '{resource_type}'")
    return rule


# -----------------------------------------------------
# Generic rule
# -----------------------------------------------------
def _acting_user_id(context) -> Optional[str]:
    user = getattr(context, "user", None)
    return user.id if user is not None else None


def matches_any_field(resource, fields: Iterable[str], user_id: Optional[str]) -> bool:
    if not user_id:
        return False
    return any(read_field(resource, f) == user_id for f in fields)


def ownership_or_global(
    context,
    resource,
    owner_fields: Iterable[str],
    global_perm: str,
    scoped_perm: str,
) -> bool:
    if resource is None or not context.is_ready:
        return False

    if context.has_permission(global_perm):
        return True

    return (
        matches_any_field(resource, owner_fields, _acting_user_id(context))
        and context.has_permission(scoped_perm)
    )


# -----------------------------------------------------
# Predicates
# -----------------------------------------------------
def can_edit(context, resource, resource_type: str = "requirement") -> bool:
    rule = get_resource_rule(resource_type)
    return ownership_or_global(
        context, resource, rule.owner_fields, rule.code("edit_all"), rule.code("edit_own")
    )


def can_delete(context, resource, resource_type: str = "requirement") -> bool:
    rule = get_resource_rule(resource_type)
    return ownership_or_global(
        context, resource, rule.owner_fields, rule.code("delete_all"), rule.code("delete_own")
    )


def can_update_status(context, resource, resource_type: str = "requirement") -> bool:
    rule = get_resource_rule(resource_type)
    if resource is None or not context.is_ready:
        return False

    if context.has_any_permission([rule.code("status_update"), rule.code("edit_all")]):
        return True

    # Owner or assignee, with the scoped grant
    return ownership_or_global(
        context,
        resource,
        rule.owner_fields + rule.assignee_fields,
        rule.code("status_update"),
        rule.code("status_update_own"),
    )


# ============================================================
# Narrow interface for consumers
# ============================================================
class PermissionChecker:
    """
    Everything routes and renderers need to ask about one session.
    """

    def __init__(self, context):
        self.context = context

    # Queries
    def has_permission(self, code: str) -> bool:
        return self.context.has_permission(code)

    def has_any_permission(self, codes) -> bool:
        return self.context.has_any_permission(codes)

    def has_all_permissions(self, codes) -> bool:
        return self.context.has_all_permissions(codes)

    async def refresh(self) -> None:
        await self.context.refresh()

    # Predicates
    def can_edit(self, resource, resource_type: str = "requirement") -> bool:
        return can_edit(self.context, resource, resource_type)

    def can_delete(self, resource, resource_type: str = "requirement") -> bool:
        return can_delete(self.context, resource, resource_type)

    def can_update_status(self, resource, resource_type: str = "requirement") -> bool:
        return can_update_status(self.context, resource, resource_type)

    # Convenience flags
    @property
    def can_manage_users(self) -> bool:
        return self.has_any_permission([PERMISSIONS["USER"]["MANAGE"], PERMISSIONS["USER"]["EDIT"]])

    @property
    def can_manage_roles(self) -> bool:
        return self.has_any_permission([
            PERMISSIONS["ROLE"]["MANAGE"],
            PERMISSIONS["USER"]["MANAGE_ROLES"],
        ])

    @property
    def can_manage_permissions(self) -> bool:
        return self.has_permission(PERMISSIONS["PERMISSION"]["MANAGE"])

    @property
    def can_view_all_requirements(self) -> bool:
        return self.has_permission(PERMISSIONS["REQUIREMENT"]["VIEW_ALL"])

    @property
    def is_super_admin(self) -> bool:
        if not self.context.is_ready:
            return False
        return any(role.name == SUPER_ADMIN for role in self.context.roles)
