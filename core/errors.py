# core/errors.py

from typing import Optional


# Logged (never raised) when resolution falls back to the legacy role table
DEGRADED_PERMISSION_MODE = "DegradedPermissionMode"


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1 - Supabase Auth / GoTrue / PostgREST APIError
    if hasattr(error, "message"):
        try:
            return str(error.message)
        except Exception:
            pass

    # Case 2 - Supabase errors with args (common)
    if hasattr(error, "args") and error.args:
        try:
            return str(error.args[0])
        except Exception:
            pass

    # Case 3 - Plain string fallback
    try:
        return str(error)
    except Exception:
        return "Unknown Supabase error"


# ============================================================
# Permission system errors
# ============================================================
class PermissionSystemError(Exception):
    """
    Base class for every error raised by the permission engine.
    `status_code` is what the HTTP layer answers with.
    """

    status_code = 500
    field: Optional[str] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error": type(self).__name__}
        if self.field:
            body["field"] = self.field
        return body


class StoreUnavailable(PermissionSystemError):
    """Transport or storage failure while talking to Supabase."""

    status_code = 503

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        detail = extract_supabase_error(cause) if cause is not None else "no response"
        super().__init__(f"{operation}: {detail}. Please try again.")
        self.operation = operation
        self.cause = cause


class InvalidPermissionCode(PermissionSystemError):
    status_code = 422
    field = "code"

    def __init__(self, code: str, reason: str = "unrecognized permission code"):
        super().__init__(f"Invalid permission code '{code}': {reason}")
        self.code = code


class RoleInUse(PermissionSystemError):
    status_code = 409

    def __init__(self, role_name: str, reason: str):
        super().__init__(f"Role '{role_name}' cannot be deleted: {reason}")
        self.role_name = role_name
        self.reason = reason


class SystemRoleProtected(PermissionSystemError):
    status_code = 403

    def __init__(self, role_name: str, action: str = "modify"):
        super().__init__(f"Built-in role '{role_name}' cannot be {action}d")
        self.role_name = role_name


class RoleNotFound(PermissionSystemError):
    status_code = 404

    def __init__(self, role_id: str):
        super().__init__(f"Role {role_id} not found")


class RoleAlreadyAssigned(PermissionSystemError):
    status_code = 409

    def __init__(self, user_id: str, role_id: str):
        super().__init__(f"Role {role_id} is already assigned to user {user_id}")


class RoleConflict(PermissionSystemError):
    status_code = 409

    def __init__(self, name: str):
        super().__init__(f"Role name '{name}' is already taken")


class PermissionNotFound(PermissionSystemError):
    status_code = 404

    def __init__(self, permission_id: str):
        super().__init__(f"Permission {permission_id} not found")


class PermissionInUse(PermissionSystemError):
    status_code = 409

    def __init__(self, code: str, reason: str):
        super().__init__(f"Permission '{code}' cannot be deleted: {reason}")


class SystemPermissionProtected(PermissionSystemError):
    status_code = 403

    def __init__(self, code: str):
        super().__init__(f"System permission '{code}' cannot be deleted")


class PermissionConflict(PermissionSystemError):
    status_code = 409

    def __init__(self, code: str):
        super().__init__(f"Permission code '{code}' already exists")


class UserNotFound(PermissionSystemError):
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
