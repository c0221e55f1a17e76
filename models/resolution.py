# models/resolution.py

from typing import FrozenSet, List, Optional
from pydantic import BaseModel, Field, field_serializer

from models.enums import ResolutionMode
from models.role import RoleSummary


class ResolvedPermissions(BaseModel):
    """
    Effective permission set of one user at one point in time.
    Never persisted.
    """
    user_id: str
    permission_codes: FrozenSet[str] = frozenset()
    roles: List[RoleSummary] = Field(default_factory=list)
    mode: ResolutionMode = ResolutionMode.resolved
    legacy_role: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.mode == ResolutionMode.degraded

    @field_serializer("permission_codes")
    def serialize_codes(self, codes: FrozenSet[str]):
        return sorted(codes)
