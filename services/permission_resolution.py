# services/permission_resolution.py

from typing import List, Optional

from pydantic import ValidationError

from core.errors import DEGRADED_PERMISSION_MODE, StoreUnavailable
from core.legacy_permissions import fallback_permissions, normalize_legacy_role
from core.logging_config import logger
from models.enums import ResolutionMode
from models.resolution import ResolvedPermissions
from models.role import RoleSummary


class PermissionResolutionService:
    """
    Computes a user's effective permission set:

        union of active permissions
          of active roles
            held through active assignments

    An inactive (or unknown) user resolves to nothing. When the store
    cannot be read, the legacy role table answers instead and the result
    is flagged as degraded.
    """

    def __init__(self, store):
        self.store = store

    async def resolve(self, user_id: str, legacy_role: Optional[str] = None) -> ResolvedPermissions:
        user = None
        try:
            user = await self.store.get_user(user_id)

            if user is None or not user.active:
                return ResolvedPermissions(
                    user_id=user_id,
                    mode=ResolutionMode.inactive,
                    legacy_role=user.role if user else legacy_role,
                )

            role_ids = await self.store.get_active_role_ids(user_id)
            roles = await self.store.get_roles_by_ids(role_ids, active_only=True)
            permissions_by_role = await self.store.get_permissions_for_roles(r.id for r in roles)

        except (StoreUnavailable, ValidationError) as e:
            # A row that fails validation counts as a failed read
            return degraded_resolution(user_id, user.role if user else legacy_role, e)

        codes = set()
        for role in roles:
            for permission in permissions_by_role.get(role.id, []):
                if permission.is_active:
                    codes.add(permission.code)

        return ResolvedPermissions(
            user_id=user_id,
            permission_codes=frozenset(codes),
            roles=self._summaries(roles, user.role),
            mode=ResolutionMode.resolved,
            legacy_role=user.role,
        )

    # -----------------------------------------------------
    # Helpers
    # -----------------------------------------------------
    @staticmethod
    def _summaries(roles, legacy_role: Optional[str]) -> List[RoleSummary]:
        # The legacy role, when held, is listed first and flagged primary
        summaries = [
            RoleSummary(
                id=role.id,
                name=role.name,
                description=role.description,
                is_primary=role.name == legacy_role,
            )
            for role in roles
        ]
        return sorted(summaries, key=lambda s: (not s.is_primary, s.name))


def degraded_resolution(user_id: str, legacy_role: Optional[str], cause: Exception) -> ResolvedPermissions:
    """Legacy-tier answer used whenever the role tables cannot be read."""
    tier = normalize_legacy_role(legacy_role)
    logger.warning(
        f"{DEGRADED_PERMISSION_MODE}: user={user_id} legacy_role={legacy_role} "
        f"tier={tier} cause={cause!r}"
    )
    return ResolvedPermissions(
        user_id=user_id,
        permission_codes=fallback_permissions(tier),
        roles=[RoleSummary(name=tier, is_primary=True)],
        mode=ResolutionMode.degraded,
        legacy_role=legacy_role,
    )
