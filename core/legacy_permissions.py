# core/legacy_permissions.py

"""
Fallback permissions keyed by the legacy `users.role` string.

Only used when the role/permission tables cannot be read. Kept apart from
the normal resolution path so it can be deleted once every user has
role assignments.
"""

from typing import Dict, FrozenSet, Optional

from core.roles import ADMIN, EMPLOYEE, SUPER_ADMIN


# ============================================
# LEGACY ROLE → MINIMAL PERMISSIONS
# ============================================
LEGACY_ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {

    # =====================================================
    # ELEVATED
    # =====================================================
    SUPER_ADMIN: frozenset({
        "requirement.create",
        "requirement.view_all",
        "requirement.edit",
        "requirement.edit_all",
        "requirement.delete",
        "requirement.delete_all",
        "requirement.assign",
        "requirement.status_update",
        "user.manage",
        "system.manage",
        "analytics.view",
        "data.export",
    }),

    # =====================================================
    # ADMIN
    # =====================================================
    ADMIN: frozenset({
        "requirement.create",
        "requirement.view_all",
        "requirement.edit",
        "requirement.edit_all",
        "requirement.assign",
        "requirement.status_update",
        "user.view",
        "user.create",
        "user.edit",
        "analytics.view",
        "data.export",
    }),

    # =====================================================
    # EMPLOYEE - no view_all / manage grants
    # =====================================================
    EMPLOYEE: frozenset({
        "requirement.create",
        "requirement.view_own",
        "requirement.edit_own",
        "requirement.status_update_own",
        "comment.create",
    }),
}


def normalize_legacy_role(role: Optional[str]) -> str:
    """Unknown or missing roles land on the employee tier."""
    if role in LEGACY_ROLE_PERMISSIONS:
        return role
    return EMPLOYEE


def fallback_permissions(role: Optional[str]) -> FrozenSet[str]:
    return LEGACY_ROLE_PERMISSIONS[normalize_legacy_role(role)]
