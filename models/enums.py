from enum import Enum


class BaseStrEnum(str, Enum):
    """Base enum that serializes cleanly to a string."""

    def __str__(self):
        return str(self.value)


# -----------------------------------------------------
# RESOLUTION MODE
# -----------------------------------------------------
class ResolutionMode(BaseStrEnum):
    """How an effective permission set was produced."""

    resolved = "resolved"    # from role assignments
    degraded = "degraded"    # store failed, legacy role table used
    inactive = "inactive"    # user inactive or missing: empty set


# -----------------------------------------------------
# SESSION CONTEXT STATE
# -----------------------------------------------------
class ContextState(BaseStrEnum):
    unauthenticated = "unauthenticated"
    loading = "loading"
    ready = "ready"


# -----------------------------------------------------
# GUARD DECISION
# -----------------------------------------------------
class GuardDecision(BaseStrEnum):
    loading = "loading"
    allow = "allow"
    deny = "deny"
