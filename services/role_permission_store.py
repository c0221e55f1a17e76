# services/role_permission_store.py

"""
Narrow adapter over the Supabase permission tables:

    permissions, roles, role_permissions, user_roles, users

Reads raise StoreUnavailable on any transport failure. Every mutation
that changes what some user is allowed to do publishes
PERMISSIONS_CHANGED on the event bus after it succeeds.
"""

from typing import Dict, Iterable, List, Optional

from core.config import settings
from core.errors import (
    PermissionConflict,
    PermissionInUse,
    PermissionNotFound,
    RoleAlreadyAssigned,
    RoleConflict,
    RoleInUse,
    RoleNotFound,
    SystemPermissionProtected,
    SystemRoleProtected,
    UserNotFound,
)
from core.events import PERMISSIONS_CHANGED, EventBus, get_event_bus
from core.logging_config import logger
from core.permissions import (
    CATEGORY_LABELS,
    PERMISSION_GROUPS,
    describe,
    split_code,
    validate_code,
)
from core.roles import SYSTEM_ROLE_DESCRIPTIONS, SYSTEM_ROLE_PERMISSIONS, is_system_role
from core.supabase_helpers import (
    safe_delete,
    safe_execute,
    safe_insert,
    safe_rpc,
    safe_select,
    safe_select_one,
    safe_update,
    safe_upsert,
)
from core.utils import utc_now_iso
from models.permission import (
    Permission,
    PermissionCategoryNode,
    PermissionCreate,
    PermissionNode,
    PermissionUpdate,
    PermissionUsage,
)
from models.role import (
    Role,
    RoleAssignment,
    RoleCreate,
    RoleUpdate,
    RoleUsage,
    RoleWithPermissions,
)
from models.user import User


# Display order of categories in the admin permission tree
CATEGORY_ORDER = [
    "requirement", "form", "navigation", "user", "role",
    "permission", "system", "analytics", "data", "comment",
]


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


class RolePermissionStore:

    def __init__(self, client, bus: Optional[EventBus] = None):
        self.client = client
        self.bus = bus or get_event_bus()

    async def _broadcast(self, reason: str, **payload):
        await self.bus.publish(PERMISSIONS_CHANGED, {"reason": reason, **payload})

    # =================================================================
    # ROLES
    # =================================================================

    async def list_roles(
        self,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Role]:
        filters = {}
        if is_active is not None:
            filters["is_active"] = is_active

        rows = await safe_select(self.client, "roles", filters, order_by=["created_at"])
        roles = [Role(**row) for row in rows]

        if search:
            needle = search.strip().lower()
            roles = [
                r for r in roles
                if needle in r.name.lower() or needle in (r.description or "").lower()
            ]
        return roles

    async def get_role(self, role_id: str) -> Role:
        row = await safe_select_one(self.client, "roles", {"id": role_id})
        if not row:
            raise RoleNotFound(role_id)
        return Role(**row)

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        row = await safe_select_one(self.client, "roles", {"name": name})
        return Role(**row) if row else None

    async def get_role_with_permissions(self, role_id: str) -> RoleWithPermissions:
        role = await self.get_role(role_id)
        permissions = await self.get_role_permissions(role_id)
        return RoleWithPermissions(**role.model_dump(), permissions=permissions)

    async def is_role_name_available(self, name: str, exclude_id: Optional[str] = None) -> bool:
        rows = await safe_select(self.client, "roles", {"name": name}, columns="id")
        return all(row["id"] == exclude_id for row in rows)

    async def get_roles_by_ids(self, role_ids: Iterable[str], active_only: bool = False) -> List[Role]:
        role_ids = _unique(role_ids)
        if not role_ids:
            return []

        filters = {"is_active": True} if active_only else {}
        rows = await safe_select(self.client, "roles", filters, in_filters={"id": role_ids})
        return [Role(**row) for row in rows]

    async def create_role(self, payload: RoleCreate, created_by: Optional[str] = None) -> RoleWithPermissions:
        name = payload.name.strip()
        if is_system_role(name) or not await self.is_role_name_available(name):
            raise RoleConflict(name)

        row = await safe_insert(self.client, "roles", {
            "name": name,
            "description": payload.description,
            "is_active": payload.is_active,
            "is_system": False,
            "created_by": created_by,
        })
        role = Role(**row)
        logger.info(f"Role created: {role.name} ({role.id})")

        if payload.permission_ids:
            await self.replace_role_permissions(role.id, payload.permission_ids)

        return await self.get_role_with_permissions(role.id)

    async def update_role(self, role_id: str, payload: RoleUpdate) -> RoleWithPermissions:
        role = await self.get_role(role_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"permission_ids"})

        if role.is_system or is_system_role(role.name):
            if "name" in changes and changes["name"] != role.name:
                raise SystemRoleProtected(role.name, "rename")
            if changes.get("is_active") is False:
                raise SystemRoleProtected(role.name, "deactivate")

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if changes["name"] != role.name:
                available = await self.is_role_name_available(changes["name"], exclude_id=role_id)
                if is_system_role(changes["name"]) or not available:
                    raise RoleConflict(changes["name"])

        if changes:
            changes["updated_at"] = utc_now_iso()
            await safe_update(self.client, "roles", {"id": role_id}, changes)

        if payload.permission_ids is not None:
            await self.replace_role_permissions(role_id, payload.permission_ids)
        elif "is_active" in changes and changes["is_active"] != role.is_active:
            await self._broadcast("role_updated", role_id=role_id)

        return await self.get_role_with_permissions(role_id)

    async def delete_role(self, role_id: str) -> None:
        role = await self.get_role(role_id)

        if role.is_system or is_system_role(role.name):
            raise SystemRoleProtected(role.name, "delete")

        assigned = await safe_select(
            self.client, "user_roles", {"role_id": role_id}, columns="id", limit=1
        )
        if assigned:
            raise RoleInUse(role.name, "it is still assigned to users")

        legacy = await safe_select(
            self.client, "users", {"role": role.name}, columns="id", limit=1
        )
        if legacy:
            raise RoleInUse(role.name, "it is still the legacy role of users")

        links = await safe_select(
            self.client, "role_permissions", {"role_id": role_id}, columns="permission_id", limit=1
        )
        if links:
            raise RoleInUse(role.name, "it still has permissions; clear them first")

        await safe_delete(self.client, "roles", {"id": role_id})
        logger.info(f"Role deleted: {role.name} ({role_id})")
        await self._broadcast("role_deleted", role_id=role_id)

    # =================================================================
    # ROLE → PERMISSION LINKS
    # =================================================================

    async def get_role_permissions(self, role_id: str) -> List[Permission]:
        links = await safe_select(
            self.client, "role_permissions", {"role_id": role_id}, columns="permission_id"
        )
        permission_ids = _unique(link["permission_id"] for link in links)
        return await self.get_permissions_by_ids(permission_ids)

    async def get_permissions_for_roles(self, role_ids: Iterable[str]) -> Dict[str, List[Permission]]:
        """role_id → linked permissions, in two round trips."""
        role_ids = _unique(role_ids)
        if not role_ids:
            return {}

        links = await safe_select(
            self.client,
            "role_permissions",
            columns="role_id, permission_id",
            in_filters={"role_id": role_ids},
        )
        permissions = await self.get_permissions_by_ids(link["permission_id"] for link in links)
        by_id = {p.id: p for p in permissions}

        result: Dict[str, List[Permission]] = {role_id: [] for role_id in role_ids}
        for link in links:
            permission = by_id.get(link["permission_id"])
            if permission is not None:
                result.setdefault(link["role_id"], []).append(permission)
        return result

    async def replace_role_permissions(self, role_id: str, permission_ids: Iterable[str]) -> None:
        """
        Replace the whole permission set of a role in one database
        transaction. Readers see either the old set or the new one.
        """
        await self.get_role(role_id)
        permission_ids = _unique(permission_ids)

        if permission_ids:
            known = await self.get_permissions_by_ids(permission_ids)
            missing = set(permission_ids) - {p.id for p in known}
            if missing:
                raise PermissionNotFound(", ".join(sorted(missing)))

        await self._replace_links(role_id, permission_ids)
        logger.info(f"Role {role_id} permissions replaced ({len(permission_ids)} permission(s))")
        await self._broadcast("role_permissions_replaced", role_id=role_id)

    async def _replace_links(self, role_id: str, permission_ids: List[str]) -> None:
        await safe_rpc(
            self.client,
            settings.REPLACE_ROLE_PERMISSIONS_RPC,
            {"p_role_id": role_id, "p_permission_ids": permission_ids},
        )

    # =================================================================
    # PERMISSIONS
    # =================================================================

    async def list_permissions(self) -> List[Permission]:
        rows = await safe_select(self.client, "permissions", order_by=["category", "sort_order"])
        return [Permission(**row) for row in rows]

    async def get_permissions_by_ids(self, permission_ids: Iterable[str]) -> List[Permission]:
        permission_ids = _unique(permission_ids)
        if not permission_ids:
            return []

        rows = await safe_select(
            self.client, "permissions", in_filters={"id": permission_ids}, order_by=["sort_order"]
        )
        return [Permission(**row) for row in rows]

    async def get_permission(self, permission_id: str) -> Permission:
        row = await safe_select_one(self.client, "permissions", {"id": permission_id})
        if not row:
            raise PermissionNotFound(permission_id)
        return Permission(**row)

    async def list_permission_categories(self) -> List[str]:
        rows = await safe_select(self.client, "permissions", columns="category")
        return sorted({row["category"] for row in rows if row.get("category")})

    async def get_permission_tree(self) -> List[PermissionCategoryNode]:
        """
        Display tree: one virtual node per category, permissions nested
        under their parent_id within that category. Grants nothing.
        """
        permissions = await self.list_permissions()

        by_category: Dict[str, List[Permission]] = {}
        for permission in permissions:
            by_category.setdefault(permission.category or "other", []).append(permission)

        tree = []
        for category, members in by_category.items():
            nodes = {p.id: PermissionNode(**p.model_dump()) for p in members}
            roots = []
            for permission in members:
                node = nodes[permission.id]
                parent = nodes.get(permission.parent_id) if permission.parent_id else None
                if parent is not None and parent is not node:
                    parent.children.append(node)
                else:
                    roots.append(node)

            label = CATEGORY_LABELS.get(category, category)
            tree.append(PermissionCategoryNode(
                id=f"category:{category}",
                code=f"category.{category}",
                name=label,
                category=category,
                children=roots,
            ))

        def position(node):
            if node.category in CATEGORY_ORDER:
                return CATEGORY_ORDER.index(node.category)
            return len(CATEGORY_ORDER)

        return sorted(tree, key=position)

    async def create_permission(self, payload: PermissionCreate, created_by: Optional[str] = None) -> Permission:
        # Validation happens before any store access
        code = validate_code(payload.code)

        existing = await safe_select(self.client, "permissions", {"code": code}, columns="id", limit=1)
        if existing:
            raise PermissionConflict(code)

        resource, action = split_code(code)
        row = await safe_insert(self.client, "permissions", {
            "code": code,
            "name": payload.name or describe(code),
            "description": payload.description,
            "category": payload.category or resource,
            "resource": resource,
            "action": action,
            "conditions": payload.conditions,
            "is_system": False,
            "is_active": payload.is_active,
            "parent_id": payload.parent_id,
            "sort_order": payload.sort_order,
            "created_by": created_by,
        })
        logger.info(f"Permission created: {code}")
        return Permission(**row)

    async def update_permission(self, permission_id: str, payload: PermissionUpdate) -> Permission:
        permission = await self.get_permission(permission_id)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return permission

        changes["updated_at"] = utc_now_iso()
        row = await safe_update(self.client, "permissions", {"id": permission_id}, changes)
        updated = Permission(**row) if row else await self.get_permission(permission_id)

        if "is_active" in changes and changes["is_active"] != permission.is_active:
            await self._broadcast("permission_updated", permission_id=permission_id)
        return updated

    async def delete_permission(self, permission_id: str) -> None:
        permission = await self.get_permission(permission_id)

        if permission.is_system:
            raise SystemPermissionProtected(permission.code)

        children = await safe_select(
            self.client, "permissions", {"parent_id": permission_id}, columns="id", limit=1
        )
        if children:
            raise PermissionInUse(permission.code, "it has child permissions")

        links = await safe_select(
            self.client, "role_permissions", {"permission_id": permission_id}, columns="role_id", limit=1
        )
        if links:
            raise PermissionInUse(permission.code, "it is still linked to roles")

        await safe_delete(self.client, "permissions", {"id": permission_id})
        logger.info(f"Permission deleted: {permission.code}")

    # =================================================================
    # USERS & ASSIGNMENTS
    # =================================================================

    async def get_user(self, user_id: str) -> Optional[User]:
        row = await safe_select_one(self.client, "users", {"id": user_id})
        return User(**row) if row else None

    async def get_user_role_assignments(self, user_id: str, active_only: bool = True) -> List[RoleAssignment]:
        filters = {"user_id": user_id}
        if active_only:
            filters["is_active"] = True

        rows = await safe_select(self.client, "user_roles", filters, order_by=["created_at"])
        return [RoleAssignment(**row) for row in rows]

    async def get_active_role_ids(self, user_id: str) -> List[str]:
        assignments = await self.get_user_role_assignments(user_id, active_only=True)
        return _unique(a.role_id for a in assignments)

    async def assign_role(self, user_id: str, role_id: str, assigned_by: Optional[str] = None) -> RoleAssignment:
        await self.get_role(role_id)

        existing = await safe_select(
            self.client, "user_roles", {"user_id": user_id, "role_id": role_id}, columns="id", limit=1
        )
        if existing:
            raise RoleAlreadyAssigned(user_id, role_id)

        row = await safe_insert(self.client, "user_roles", {
            "user_id": user_id,
            "role_id": role_id,
            "assigned_by": assigned_by,
            "is_active": True,
        })
        logger.info(f"Role {role_id} assigned to user {user_id} by {assigned_by}")
        await self._broadcast("role_assigned", user_id=user_id, role_id=role_id)
        return RoleAssignment(**row)

    async def remove_role(self, user_id: str, role_id: str) -> None:
        await safe_delete(self.client, "user_roles", {"user_id": user_id, "role_id": role_id})
        await self._broadcast("role_removed", user_id=user_id, role_id=role_id)

    async def set_assignment_active(self, user_id: str, role_id: str, active: bool) -> None:
        await safe_update(
            self.client,
            "user_roles",
            {"user_id": user_id, "role_id": role_id},
            {"is_active": active, "updated_at": utc_now_iso()},
        )
        await self._broadcast("assignment_status_changed", user_id=user_id, role_id=role_id)

    async def clear_roles(self, user_id: str) -> None:
        await safe_delete(self.client, "user_roles", {"user_id": user_id})
        await self._broadcast("roles_cleared", user_id=user_id)

    async def set_legacy_role(self, user_id: str, role_name: str, assigned_by: Optional[str] = None) -> User:
        """
        Write users.role and make the matching role the user's only
        assignment. The new assignment is in place before the others
        are removed, so the user never passes through zero roles.
        """
        if await self.get_user(user_id) is None:
            raise UserNotFound(user_id)

        row = await safe_update(
            self.client, "users", {"id": user_id}, {"role": role_name, "updated_at": utc_now_iso()}
        )

        role = await self.get_role_by_name(role_name)
        if role is None:
            logger.warning(f"Legacy role '{role_name}' has no matching role; assignments untouched")
        else:
            existing = await safe_select(
                self.client, "user_roles", {"user_id": user_id, "role_id": role.id}, columns="id", limit=1
            )
            if existing:
                await safe_update(
                    self.client,
                    "user_roles",
                    {"user_id": user_id, "role_id": role.id},
                    {"is_active": True, "updated_at": utc_now_iso()},
                )
            else:
                await safe_insert(self.client, "user_roles", {
                    "user_id": user_id,
                    "role_id": role.id,
                    "assigned_by": assigned_by,
                    "is_active": True,
                })

            await safe_execute(
                self.client.table("user_roles").delete().eq("user_id", user_id).neq("role_id", role.id),
                "Failed to delete from user_roles",
            )

        await self._broadcast("legacy_role_changed", user_id=user_id)
        return User(**row) if row else await self.get_user(user_id)

    async def set_user_active(self, user_id: str, active: bool) -> User:
        if await self.get_user(user_id) is None:
            raise UserNotFound(user_id)

        row = await safe_update(
            self.client, "users", {"id": user_id}, {"active": active, "updated_at": utc_now_iso()}
        )
        await self._broadcast("user_active_changed", user_id=user_id)
        return User(**row) if row else await self.get_user(user_id)

    # =================================================================
    # USAGE STATISTICS
    # =================================================================

    async def role_usage_stats(self) -> List[RoleUsage]:
        roles = await safe_select(self.client, "roles", columns="id, name")
        assignments = await safe_select(self.client, "user_roles", columns="role_id, user_id, is_active")

        stats = []
        for role in roles:
            rows = [a for a in assignments if a["role_id"] == role["id"]]
            stats.append(RoleUsage(
                role_id=role["id"],
                role_name=role["name"],
                user_count=len({a["user_id"] for a in rows}),
                active_user_count=len({a["user_id"] for a in rows if a.get("is_active")}),
            ))
        return stats

    async def permission_usage_stats(self) -> List[PermissionUsage]:
        permissions = await safe_select(self.client, "permissions", columns="id, code")
        links = await safe_select(self.client, "role_permissions", columns="role_id, permission_id")
        assignments = await safe_select(
            self.client, "user_roles", {"is_active": True}, columns="role_id, user_id"
        )

        users_by_role: Dict[str, set] = {}
        for a in assignments:
            users_by_role.setdefault(a["role_id"], set()).add(a["user_id"])

        stats = []
        for permission in permissions:
            role_ids = {l["role_id"] for l in links if l["permission_id"] == permission["id"]}
            user_ids = set()
            for role_id in role_ids:
                user_ids |= users_by_role.get(role_id, set())
            stats.append(PermissionUsage(
                permission_id=permission["id"],
                permission_code=permission["code"],
                role_count=len(role_ids),
                user_count=len(user_ids),
            ))
        return stats

    # =================================================================
    # SEEDING
    # =================================================================

    async def seed_catalog(self) -> dict:
        """
        Upsert every catalogued permission and the built-in roles, then
        set each built-in role's bundle. One broadcast at the end.
        """
        permission_rows = []
        for group in PERMISSION_GROUPS:
            for order, code in enumerate(group["permissions"]):
                resource, action = split_code(code)
                permission_rows.append({
                    "code": code,
                    "name": describe(code),
                    "description": f"{group['name']} - {describe(code)}",
                    "category": group["category"],
                    "resource": resource,
                    "action": action,
                    "is_system": True,
                    "is_active": True,
                    "sort_order": order,
                })
        await safe_upsert(self.client, "permissions", permission_rows, on_conflict="code")

        role_rows = [
            {"name": name, "description": description, "is_system": True, "is_active": True}
            for name, description in SYSTEM_ROLE_DESCRIPTIONS.items()
        ]
        await safe_upsert(self.client, "roles", role_rows, on_conflict="name")

        stored = await safe_select(self.client, "permissions", columns="id, code")
        ids_by_code = {row["code"]: row["id"] for row in stored}

        linked = {}
        for name, codes in SYSTEM_ROLE_PERMISSIONS.items():
            role = await self.get_role_by_name(name)
            if role is None:
                logger.error(f"Seeded role {name} not found after upsert")
                continue
            permission_ids = [ids_by_code[c] for c in codes if c in ids_by_code]
            await self._replace_links(role.id, permission_ids)
            linked[name] = len(permission_ids)
            logger.info(f"Seeded role {name} with {len(permission_ids)} permission(s)")

        await self._broadcast("catalog_seeded")
        return {"permissions": len(permission_rows), "roles": linked}
