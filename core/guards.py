# core/guards.py

"""
Declarative permission guards.

A guard turns a session context into one of three decisions
(loading / allow / deny) and maps that to what should be shown:

    PermissionGuard  hide the content, or show a fallback
    ButtonGuard      keep the control visible but disabled, with a tooltip
    PageGuard        whole-page variant with an "access restricted" fallback

The FastAPI dependencies at the bottom apply the same decision to a
request: 503 while loading, 403 on deny.
"""

from typing import Any, List, Optional

from fastapi import Depends, HTTPException

from core.logging_config import logger
from dependencies.auth import get_permission_context
from models.enums import ContextState, GuardDecision
from models.requirement import ActionState


DEFAULT_DENIED_TOOLTIP = "You do not have permission to perform this action"

ACCESS_RESTRICTED = {
    "restricted": True,
    "title": "Access restricted",
    "message": "You do not have permission to view this page. Contact an administrator.",
}


class PermissionGuard:
    """
    `permission` must hold, and so must `permissions` (any of them, or
    all of them with require_all=True). Naming neither never allows.
    """

    def __init__(
        self,
        permission: Optional[str] = None,
        permissions: Optional[List[str]] = None,
        require_all: bool = False,
    ):
        self.permission = permission
        self.permissions = list(permissions or [])
        self.require_all = require_all

    @property
    def required(self) -> List[str]:
        codes = [self.permission] if self.permission else []
        return codes + [c for c in self.permissions if c not in codes]

    def is_allowed(self, context) -> bool:
        if not self.permission and not self.permissions:
            return False

        if self.permission and not context.has_permission(self.permission):
            return False

        if self.permissions:
            if self.require_all:
                return context.has_all_permissions(self.permissions)
            return context.has_any_permission(self.permissions)

        return True

    def evaluate(self, context) -> GuardDecision:
        if context.state == ContextState.unauthenticated:
            return GuardDecision.deny
        if not context.is_ready:
            return GuardDecision.loading
        return GuardDecision.allow if self.is_allowed(context) else GuardDecision.deny

    def render(self, context, children: Any, fallback: Any = None, loading: Any = None) -> Any:
        decision = self.evaluate(context)
        if decision == GuardDecision.loading:
            return loading
        if decision == GuardDecision.allow:
            return children
        return fallback


class ButtonGuard(PermissionGuard):

    def __init__(
        self,
        permission: Optional[str] = None,
        permissions: Optional[List[str]] = None,
        require_all: bool = False,
        disabled_tooltip: str = DEFAULT_DENIED_TOOLTIP,
    ):
        super().__init__(permission, permissions, require_all)
        self.disabled_tooltip = disabled_tooltip

    def render(self, context, control: ActionState) -> ActionState:
        decision = self.evaluate(context)
        if decision == GuardDecision.loading:
            return control.model_copy(update={"disabled": True, "loading": True})
        if decision == GuardDecision.deny:
            return control.model_copy(update={"disabled": True, "tooltip": self.disabled_tooltip})
        return control


class PageGuard(PermissionGuard):

    def render(self, context, children: Any, fallback: Any = None, loading: Any = None) -> Any:
        if fallback is None:
            fallback = dict(ACCESS_RESTRICTED)
        return super().render(context, children, fallback=fallback, loading=loading)


# ============================================================
# FastAPI dependencies
# ============================================================
def _enforce(guard: PermissionGuard, context):
    decision = guard.evaluate(context)

    if decision == GuardDecision.loading:
        raise HTTPException(
            status_code=503,
            detail="Permissions are still loading. Please try again.",
        )

    if decision == GuardDecision.deny:
        label = "', '".join(guard.required)
        user_id = context.user.id if context.user else None
        logger.info(f"Permission denied for user {user_id}: '{label}' required")
        raise HTTPException(
            status_code=403,
            detail=f"Insufficient permissions: '{label}' required",
        )

    return context


def requires_permission(permission: str):
    """
    Usage:
        @router.post("/", dependencies=[Depends(requires_permission("role.create"))])
    """
    guard = PermissionGuard(permission=permission)

    async def dependency(context=Depends(get_permission_context)):
        return _enforce(guard, context)

    return dependency


def requires_any_permission(permissions: List[str]):
    guard = PermissionGuard(permissions=permissions)

    async def dependency(context=Depends(get_permission_context)):
        return _enforce(guard, context)

    return dependency
