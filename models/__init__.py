# -------------------------
# Enums
# -------------------------
from .enums import (
    BaseStrEnum,
    ResolutionMode,
    ContextState,
    GuardDecision,
)

# -------------------------
# Permission Models
# -------------------------
from .permission import (
    Permission,
    PermissionCreate,
    PermissionUpdate,
    PermissionNode,
    PermissionCategoryNode,
    PermissionUsage,
)

# -------------------------
# Role Models
# -------------------------
from .role import (
    Role,
    RoleWithPermissions,
    RoleCreate,
    RoleUpdate,
    RolePermissionsReplace,
    RoleSummary,
    RoleUsage,
    RoleAssignment,
    AssignRoleRequest,
    ClearRolesRequest,
    AssignmentStatusUpdate,
)

# -------------------------
# User Models
# -------------------------
from .user import (
    User,
    LegacyRoleUpdate,
    UserActiveUpdate,
)

# -------------------------
# Resolution / Requirements
# -------------------------
from .resolution import ResolvedPermissions
from .requirement import (
    RequirementRef,
    ActionState,
    RequirementCapabilities,
)

__all__ = [
    # enums
    "BaseStrEnum",
    "ResolutionMode",
    "ContextState",
    "GuardDecision",

    # permissions
    "Permission",
    "PermissionCreate",
    "PermissionUpdate",
    "PermissionNode",
    "PermissionCategoryNode",
    "PermissionUsage",

    # roles
    "Role",
    "RoleWithPermissions",
    "RoleCreate",
    "RoleUpdate",
    "RolePermissionsReplace",
    "RoleSummary",
    "RoleUsage",
    "RoleAssignment",
    "AssignRoleRequest",
    "ClearRolesRequest",
    "AssignmentStatusUpdate",

    # users
    "User",
    "LegacyRoleUpdate",
    "UserActiveUpdate",

    # resolution / requirements
    "ResolvedPermissions",
    "RequirementRef",
    "ActionState",
    "RequirementCapabilities",
]
