# core/roles.py

from typing import Dict, List

from core.permissions import ALL_PERMISSION_CODES, PERMISSIONS


SUPER_ADMIN = "super_admin"
ADMIN = "admin"
EMPLOYEE = "employee"

# Built-in roles: never renamed, deactivated or deleted
SYSTEM_ROLE_NAMES = frozenset({SUPER_ADMIN, ADMIN, EMPLOYEE})

SYSTEM_ROLE_DESCRIPTIONS: Dict[str, str] = {
    SUPER_ADMIN: "Super administrator - every permission",
    ADMIN: "Administrator - most management permissions",
    EMPLOYEE: "Employee - basic permissions",
}


# ============================================
# SEED BUNDLES FOR THE BUILT-IN ROLES
# ============================================
SYSTEM_ROLE_PERMISSIONS: Dict[str, List[str]] = {

    # =====================================================
    # SUPER ADMIN - every catalogued permission
    # =====================================================
    SUPER_ADMIN: sorted(ALL_PERMISSION_CODES),

    # =====================================================
    # ADMIN
    # =====================================================
    ADMIN: [
        # Requirements
        PERMISSIONS["REQUIREMENT"]["CREATE"],
        PERMISSIONS["REQUIREMENT"]["VIEW_ALL"],
        PERMISSIONS["REQUIREMENT"]["EDIT_ALL"],
        PERMISSIONS["REQUIREMENT"]["ASSIGN"],
        PERMISSIONS["REQUIREMENT"]["MANAGE_ALL"],

        # Users
        PERMISSIONS["USER"]["VIEW"],
        PERMISSIONS["USER"]["CREATE"],
        PERMISSIONS["USER"]["EDIT"],
        PERMISSIONS["USER"]["MANAGE_ROLES"],

        # Analytics / data
        PERMISSIONS["ANALYTICS"]["VIEW"],
        PERMISSIONS["ANALYTICS"]["EXPORT"],
        PERMISSIONS["DATA"]["EXPORT"],

        # Comments
        PERMISSIONS["COMMENT"]["CREATE"],
        PERMISSIONS["COMMENT"]["DELETE_ALL"],

        # Forms
        PERMISSIONS["FORM"]["VIEW"],
        PERMISSIONS["FORM"]["EDIT"],
        PERMISSIONS["FORM"]["MANAGE"],
    ],

    # =====================================================
    # EMPLOYEE
    # =====================================================
    EMPLOYEE: [
        PERMISSIONS["REQUIREMENT"]["CREATE"],
        PERMISSIONS["REQUIREMENT"]["VIEW_OWN"],
        PERMISSIONS["REQUIREMENT"]["EDIT_OWN"],
        PERMISSIONS["COMMENT"]["CREATE"],
        PERMISSIONS["FORM"]["VIEW"],
    ],
}


def is_system_role(name: str) -> bool:
    return name in SYSTEM_ROLE_NAMES
