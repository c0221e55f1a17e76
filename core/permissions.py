# core/permissions.py

import re
from typing import Dict, FrozenSet, List

from core.errors import InvalidPermissionCode


# Format every stored permission code must follow: "<resource>.<action>"
CODE_PATTERN = re.compile(r"^[a-z_]+\.[a-z_]+$")


# ============================================
# PERMISSION CATEGORIES
# ============================================
PERMISSION_CATEGORIES = {
    "REQUIREMENT": "requirement",
    "USER": "user",
    "ROLE": "role",
    "PERMISSION": "permission",
    "SYSTEM": "system",
    "ANALYTICS": "analytics",
    "DATA": "data",
    "COMMENT": "comment",
    "FORM": "form",
    "NAVIGATION": "navigation",
}


# ============================================
# CENTRALIZED PERMISSION CODES
# ============================================
PERMISSIONS: Dict[str, Dict[str, str]] = {

    # =====================================================
    # REQUIREMENTS
    # =====================================================
    "REQUIREMENT": {
        "CREATE": "requirement.create",
        "VIEW_ALL": "requirement.view_all",
        "VIEW_OWN": "requirement.view_own",
        "EDIT": "requirement.edit",
        "EDIT_OWN": "requirement.edit_own",
        "EDIT_ALL": "requirement.edit_all",
        "DELETE": "requirement.delete",
        "DELETE_OWN": "requirement.delete_own",
        "DELETE_ALL": "requirement.delete_all",
        "ASSIGN": "requirement.assign",
        "STATUS_UPDATE": "requirement.status_update",
        "STATUS_UPDATE_OWN": "requirement.status_update_own",
        "MANAGE_ALL": "requirement.manage_all",
    },

    # =====================================================
    # USERS
    # =====================================================
    "USER": {
        "VIEW": "user.view",
        "CREATE": "user.create",
        "EDIT": "user.edit",
        "DELETE": "user.delete",
        "MANAGE": "user.manage",
        "MANAGE_ROLES": "user.manage_roles",
    },

    # =====================================================
    # ROLES
    # =====================================================
    "ROLE": {
        "VIEW": "role.view",
        "CREATE": "role.create",
        "EDIT": "role.edit",
        "DELETE": "role.delete",
        "MANAGE": "role.manage",
        "ASSIGN": "role.assign",
    },

    # =====================================================
    # PERMISSIONS
    # =====================================================
    "PERMISSION": {
        "VIEW": "permission.view",
        "MANAGE": "permission.manage",
    },

    # =====================================================
    # SYSTEM
    # =====================================================
    "SYSTEM": {
        "MANAGE": "system.manage",
        "CONFIG": "system.config",
        "BACKUP": "system.backup",
        "RESTORE": "system.restore",
    },

    # =====================================================
    # ANALYTICS
    # =====================================================
    "ANALYTICS": {
        "VIEW": "analytics.view",
        "EXPORT": "analytics.export",
    },

    # =====================================================
    # DATA
    # =====================================================
    "DATA": {
        "EXPORT": "data.export",
        "IMPORT": "data.import",
        "BACKUP": "data.backup",
    },

    # =====================================================
    # COMMENTS
    # =====================================================
    "COMMENT": {
        "CREATE": "comment.create",
        "EDIT": "comment.edit",
        "EDIT_OWN": "comment.edit_own",
        "DELETE": "comment.delete",
        "DELETE_OWN": "comment.delete_own",
        "DELETE_ALL": "comment.delete_all",
    },

    # =====================================================
    # FORMS
    # =====================================================
    "FORM": {
        "VIEW": "form.view",
        "CREATE": "form.create",
        "EDIT": "form.edit",
        "DELETE": "form.delete",
        "MANAGE": "form.manage",
    },

    # =====================================================
    # NAVIGATION
    # =====================================================
    "NAVIGATION": {
        "VIEW": "navigation.view",
        "EDIT": "navigation.edit",
        "MANAGE": "navigation.manage",
    },
}


# ============================================
# DISPLAY TEXT
# ============================================
PERMISSION_DESCRIPTIONS: Dict[str, str] = {
    # Requirements
    "requirement.create": "Create requirements",
    "requirement.view_all": "View all requirements",
    "requirement.view_own": "View own requirements",
    "requirement.edit": "Edit requirements",
    "requirement.edit_own": "Edit own requirements",
    "requirement.edit_all": "Edit all requirements",
    "requirement.delete": "Delete requirements",
    "requirement.delete_own": "Delete own requirements",
    "requirement.delete_all": "Delete all requirements",
    "requirement.assign": "Assign requirements",
    "requirement.status_update": "Update requirement status",
    "requirement.status_update_own": "Update status of own requirements",
    "requirement.manage_all": "Manage all requirements",

    # Users
    "user.view": "View users",
    "user.create": "Create users",
    "user.edit": "Edit users",
    "user.delete": "Delete users",
    "user.manage": "Manage users",
    "user.manage_roles": "Manage user roles",

    # Roles
    "role.view": "View roles",
    "role.create": "Create roles",
    "role.edit": "Edit roles",
    "role.delete": "Delete roles",
    "role.manage": "Manage roles",
    "role.assign": "Assign roles",

    # Permissions
    "permission.view": "View permissions",
    "permission.manage": "Manage permissions",

    # System
    "system.manage": "System administration",
    "system.config": "System configuration",
    "system.backup": "System backup",
    "system.restore": "System restore",

    # Analytics
    "analytics.view": "View analytics reports",
    "analytics.export": "Export analytics data",

    # Data
    "data.export": "Export data",
    "data.import": "Import data",
    "data.backup": "Back up data",

    # Comments
    "comment.create": "Post comments",
    "comment.edit": "Edit comments",
    "comment.edit_own": "Edit own comments",
    "comment.delete": "Delete comments",
    "comment.delete_own": "Delete own comments",
    "comment.delete_all": "Delete all comments",

    # Forms
    "form.view": "View forms",
    "form.create": "Create forms",
    "form.edit": "Edit forms",
    "form.delete": "Delete forms",
    "form.manage": "Manage forms",

    # Navigation
    "navigation.view": "View navigation",
    "navigation.edit": "Edit navigation",
    "navigation.manage": "Manage navigation",
}


# ============================================
# GROUPS (category → display name → codes)
# ============================================
CATEGORY_LABELS: Dict[str, str] = {
    "requirement": "Requirements",
    "user": "Users",
    "role": "Roles",
    "permission": "Permissions",
    "system": "System",
    "analytics": "Analytics",
    "data": "Data",
    "comment": "Comments",
    "form": "Forms",
    "navigation": "Navigation",
}

PERMISSION_GROUPS: List[dict] = [
    {
        "category": PERMISSION_CATEGORIES[key],
        "name": CATEGORY_LABELS[PERMISSION_CATEGORIES[key]],
        "permissions": tuple(codes.values()),
    }
    for key, codes in PERMISSIONS.items()
]

ALL_PERMISSION_CODES: FrozenSet[str] = frozenset(
    code for codes in PERMISSIONS.values() for code in codes.values()
)


# -----------------------------------------------------
# Lookups
# -----------------------------------------------------
def describe(code: str) -> str:
    """Display text for a code; unknown codes describe themselves."""
    return PERMISSION_DESCRIPTIONS.get(code, code)


def get_category(code: str) -> str:
    return code.split(".", 1)[0]


def matches_code_format(code: str) -> bool:
    return isinstance(code, str) and bool(CODE_PATTERN.match(code))


def is_valid_code(code: str) -> bool:
    """True only for codes enumerated above."""
    return matches_code_format(code) and code in ALL_PERMISSION_CODES


def validate_code(code: str) -> str:
    """
    Raise InvalidPermissionCode unless `code` is well formed AND catalogued.
    Used before any store write of a custom permission.
    """
    if not matches_code_format(code):
        raise InvalidPermissionCode(code, "expected format 'resource.action'")
    if code not in ALL_PERMISSION_CODES:
        raise InvalidPermissionCode(code)
    return code


def split_code(code: str) -> tuple:
    """'requirement.edit_own' → ('requirement', 'edit_own')"""
    resource, _, action = code.partition(".")
    return resource, action
