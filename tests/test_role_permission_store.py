# tests/test_role_permission_store.py

"""
Tests for the Supabase-backed role/permission store.
"""

import asyncio

import pytest

from core.errors import (
    InvalidPermissionCode,
    PermissionConflict,
    PermissionInUse,
    PermissionNotFound,
    RoleAlreadyAssigned,
    RoleConflict,
    RoleInUse,
    RoleNotFound,
    StoreUnavailable,
    SystemPermissionProtected,
    SystemRoleProtected,
    UserNotFound,
)
from core.events import PERMISSIONS_CHANGED
from core.permissions import ALL_PERMISSION_CODES
from models.permission import PermissionCreate, PermissionUpdate
from models.role import RoleCreate, RoleUpdate


pytestmark = pytest.mark.asyncio


# ============================================================
# Reads
# ============================================================
async def test_list_roles_filters_by_active_and_search(db, store):
    db.add_role("reviewer", description="Reviews requirements")
    db.add_role("auditor", is_active=False)
    db.add_role("editor")

    assert [r.name for r in await store.list_roles()] == ["reviewer", "auditor", "editor"]
    assert [r.name for r in await store.list_roles(is_active=True)] == ["reviewer", "editor"]
    assert [r.name for r in await store.list_roles(search="REVIEWS")] == ["reviewer"]


async def test_get_role_permissions_joins_through_links(db, store):
    role = db.add_role("reviewer", codes=["requirement.view_all", "comment.create"])
    db.add_role("other", codes=["requirement.delete_all"])

    codes = {p.code for p in await store.get_role_permissions(role["id"])}

    assert codes == {"requirement.view_all", "comment.create"}


async def test_unknown_role_raises_not_found(store):
    with pytest.raises(RoleNotFound):
        await store.get_role("missing")


async def test_read_failure_becomes_store_unavailable(db, store):
    db.fail("roles")

    with pytest.raises(StoreUnavailable) as exc:
        await store.list_roles()

    assert exc.value.status_code == 503
    assert "try again" in exc.value.message


async def test_permission_rows_round_trip_conditions(db, store):
    db.add_permission("requirement.edit_own", conditions={"department": "ops"})

    [permission] = await store.list_permissions()

    assert permission.conditions == {"department": "ops"}
    assert (permission.resource, permission.action) == ("requirement", "edit_own")


async def test_permission_tree_nests_children_under_category(db, store):
    parent = db.add_permission("requirement.edit")
    db.add_permission("requirement.edit_own", parent_id=parent["id"], sort_order=1)
    db.add_permission("comment.create")

    tree = await store.get_permission_tree()

    assert [node.category for node in tree] == ["requirement", "comment"]
    requirement = tree[0]
    assert requirement.name == "Requirements"
    assert [n.code for n in requirement.children] == ["requirement.edit"]
    assert [n.code for n in requirement.children[0].children] == ["requirement.edit_own"]


async def test_list_permission_categories_is_distinct_and_sorted(db, store):
    db.add_permission("user.view")
    db.add_permission("comment.create")
    db.add_permission("comment.delete")

    assert await store.list_permission_categories() == ["comment", "user"]


# ============================================================
# replace_role_permissions
# ============================================================
async def test_replace_uses_single_procedure_and_broadcasts(db, bus, store):
    role = db.add_role("reviewer", codes=["requirement.view_all"])
    new = db.add_permission("requirement.edit_all")

    await store.replace_role_permissions(role["id"], [new["id"], new["id"]])

    assert db.links_of(role["id"]) == {new["id"]}
    assert db.rpc_calls == [
        ("update_role_permissions_tx", {"p_role_id": role["id"], "p_permission_ids": [new["id"]]})
    ]
    assert not db.called("role_permissions", "delete")
    assert not db.called("role_permissions", "insert")
    assert bus.published[-1][0] == PERMISSIONS_CHANGED
    assert bus.reasons() == ["role_permissions_replaced"]


async def test_replace_with_empty_list_clears_links(db, store):
    role = db.add_role("reviewer", codes=["requirement.view_all"])

    await store.replace_role_permissions(role["id"], [])

    assert db.links_of(role["id"]) == set()


async def test_replace_rejects_unknown_permission_ids(db, bus, store):
    role = db.add_role("reviewer", codes=["requirement.view_all"])
    before = db.links_of(role["id"])

    with pytest.raises(PermissionNotFound):
        await store.replace_role_permissions(role["id"], ["nope"])

    assert db.links_of(role["id"]) == before
    assert db.rpc_calls == []
    assert bus.published == []


async def test_failed_replace_keeps_old_set_and_does_not_broadcast(db, bus, store):
    role = db.add_role("reviewer", codes=["requirement.view_all"])
    new = db.add_permission("requirement.edit_all")
    before = db.links_of(role["id"])
    db.fail("rpc", "update_role_permissions_tx")

    with pytest.raises(StoreUnavailable):
        await store.replace_role_permissions(role["id"], [new["id"]])

    assert db.links_of(role["id"]) == before
    assert bus.published == []


async def test_replace_is_atomic_for_concurrent_readers(db, store):
    role = db.add_role("reviewer", codes=["requirement.view_all", "requirement.create"])
    replacement = db.add_permission("comment.create")
    old_set = {"requirement.view_all", "requirement.create"}
    new_set = {"comment.create"}

    seen = []
    finished = False

    async def reader():
        while not finished:
            permissions = await store.get_role_permissions(role["id"])
            seen.append({p.code for p in permissions})

    async def writer():
        nonlocal finished
        for _ in range(3):
            await asyncio.sleep(0)
        await store.replace_role_permissions(role["id"], [replacement["id"]])
        for _ in range(5):
            await asyncio.sleep(0)
        finished = True

    await asyncio.gather(reader(), writer())

    assert seen
    assert all(s == old_set or s == new_set for s in seen)
    assert seen[-1] == new_set


# ============================================================
# Roles
# ============================================================
async def test_create_role_with_permissions(db, bus, store):
    perm = db.add_permission("requirement.view_all")

    role = await store.create_role(
        RoleCreate(name=" reviewer ", permission_ids=[perm["id"]]), created_by="admin-1"
    )

    assert role.name == "reviewer"
    assert role.is_system is False
    assert [p.code for p in role.permissions] == ["requirement.view_all"]
    assert bus.reasons() == ["role_permissions_replaced"]


async def test_create_role_rejects_taken_and_builtin_names(db, store):
    db.add_role("reviewer")

    with pytest.raises(RoleConflict):
        await store.create_role(RoleCreate(name="reviewer"))
    with pytest.raises(RoleConflict):
        await store.create_role(RoleCreate(name="admin"))


async def test_role_name_availability_ignores_excluded_id(db, store):
    role = db.add_role("reviewer")

    assert await store.is_role_name_available("reviewer") is False
    assert await store.is_role_name_available("reviewer", exclude_id=role["id"]) is True
    assert await store.is_role_name_available("auditor") is True


@pytest.mark.parametrize("changes", [{"name": "boss"}, {"is_active": False}])
async def test_builtin_roles_cannot_be_renamed_or_deactivated(db, store, changes):
    role = db.add_role("admin", is_system=True)

    with pytest.raises(SystemRoleProtected) as exc:
        await store.update_role(role["id"], RoleUpdate(**changes))

    assert exc.value.status_code == 403
    assert db.role_by_name("admin")["is_active"] is True


async def test_builtin_role_description_can_change(db, store):
    role = db.add_role("employee", is_system=True)

    updated = await store.update_role(role["id"], RoleUpdate(description="Staff"))

    assert updated.description == "Staff"


async def test_deactivating_custom_role_broadcasts(db, bus, store):
    role = db.add_role("reviewer")

    await store.update_role(role["id"], RoleUpdate(is_active=False))

    assert bus.reasons() == ["role_updated"]


async def test_delete_builtin_role_is_refused(db, store):
    role = db.add_role("super_admin", is_system=True)

    with pytest.raises(SystemRoleProtected):
        await store.delete_role(role["id"])


async def test_delete_role_in_use_by_assignment(db, store):
    role = db.add_role("reviewer")
    db.add_user("x")
    db.assign("x", role["id"])

    with pytest.raises(RoleInUse):
        await store.delete_role(role["id"])


async def test_delete_role_in_use_by_legacy_column(db, store):
    role = db.add_role("reviewer")
    db.add_user("x", role="reviewer")

    with pytest.raises(RoleInUse):
        await store.delete_role(role["id"])


async def test_delete_role_with_permission_links_is_refused(db, store):
    role = db.add_role("reviewer", codes=["requirement.view_all"])

    with pytest.raises(RoleInUse) as exc:
        await store.delete_role(role["id"])

    assert exc.value.status_code == 409
    assert db.role_by_name("reviewer") is not None


async def test_delete_unused_role(db, bus, store):
    role = db.add_role("reviewer")

    await store.delete_role(role["id"])

    assert db.role_by_name("reviewer") is None
    assert bus.reasons() == ["role_deleted"]


# ============================================================
# Permissions
# ============================================================
async def test_invalid_code_is_rejected_before_any_store_call(db, store):
    with pytest.raises(InvalidPermissionCode):
        await store.create_permission(PermissionCreate(code="requirement.fly"))

    assert db.calls == []


async def test_create_permission_fills_fields_from_code(db, store):
    permission = await store.create_permission(
        PermissionCreate(code="form.manage", conditions={"scope": "team"}), created_by="admin-1"
    )

    assert permission.resource == "form"
    assert permission.action == "manage"
    assert permission.category == "form"
    assert permission.is_system is False
    assert permission.conditions == {"scope": "team"}


async def test_duplicate_permission_code_conflicts(db, store):
    db.add_permission("form.manage")

    with pytest.raises(PermissionConflict):
        await store.create_permission(PermissionCreate(code="form.manage"))


async def test_deactivating_permission_broadcasts(db, bus, store):
    permission = db.add_permission("form.manage")

    updated = await store.update_permission(permission["id"], PermissionUpdate(is_active=False))

    assert updated.is_active is False
    assert updated.code == "form.manage"
    assert bus.reasons() == ["permission_updated"]


async def test_renaming_permission_does_not_broadcast(db, bus, store):
    permission = db.add_permission("form.manage")

    updated = await store.update_permission(permission["id"], PermissionUpdate(name="Forms admin"))

    assert updated.name == "Forms admin"
    assert bus.published == []


async def test_delete_permission_rules(db, store):
    system = db.add_permission("user.view", is_system=True)
    parent = db.add_permission("form.manage")
    db.add_permission("form.edit", parent_id=parent["id"])
    linked = db.add_permission("form.view")
    role = db.add_role("designer")
    db.link(role["id"], linked["id"])
    free = db.add_permission("form.delete")

    with pytest.raises(SystemPermissionProtected):
        await store.delete_permission(system["id"])
    with pytest.raises(PermissionInUse):
        await store.delete_permission(parent["id"])
    with pytest.raises(PermissionInUse):
        await store.delete_permission(linked["id"])

    await store.delete_permission(free["id"])
    assert db.permission_by_code("form.delete") is None


# ============================================================
# Users & assignments
# ============================================================
async def test_assign_role_and_duplicate(db, bus, store):
    role = db.add_role("reviewer")
    db.add_user("x")

    assignment = await store.assign_role("x", role["id"], assigned_by="admin-1")

    assert assignment.is_active is True
    assert assignment.assigned_by == "admin-1"
    assert bus.reasons() == ["role_assigned"]

    with pytest.raises(RoleAlreadyAssigned):
        await store.assign_role("x", role["id"])


async def test_assign_unknown_role(db, store):
    with pytest.raises(RoleNotFound):
        await store.assign_role("x", "missing")


async def test_assignment_mutations_broadcast(db, bus, store):
    r1 = db.add_role("reviewer")
    r2 = db.add_role("auditor")
    db.add_user("x")
    db.assign("x", r1["id"])
    db.assign("x", r2["id"])

    await store.set_assignment_active("x", r1["id"], False)
    assert await store.get_active_role_ids("x") == [r2["id"]]

    await store.remove_role("x", r2["id"])
    await store.clear_roles("x")

    assert db.rows("user_roles") == []
    assert bus.reasons() == ["assignment_status_changed", "role_removed", "roles_cleared"]


async def test_set_legacy_role_syncs_assignments(db, bus, store):
    employee = db.add_role("employee", is_system=True)
    admin = db.add_role("admin", is_system=True)
    db.add_user("x", role="employee")
    db.assign("x", employee["id"])

    user = await store.set_legacy_role("x", "admin", assigned_by="root")

    assert user.role == "admin"
    assert [a.role_id for a in await store.get_user_role_assignments("x")] == [admin["id"]]
    assert bus.reasons() == ["legacy_role_changed"]


async def test_set_legacy_role_unknown_user(store):
    with pytest.raises(UserNotFound):
        await store.set_legacy_role("ghost", "admin")


async def test_set_user_active_broadcasts(db, bus, store):
    db.add_user("x")

    user = await store.set_user_active("x", False)

    assert user.active is False
    assert bus.reasons() == ["user_active_changed"]


# ============================================================
# Statistics & seeding
# ============================================================
async def test_usage_statistics(db, store):
    reviewer = db.add_role("reviewer", codes=["requirement.view_all"])
    db.add_role("auditor", codes=["requirement.view_all", "analytics.view"])
    db.add_user("x")
    db.add_user("y")
    db.assign("x", reviewer["id"])
    db.assign("y", reviewer["id"], is_active=False)

    roles = {u.role_name: u for u in await store.role_usage_stats()}
    assert (roles["reviewer"].user_count, roles["reviewer"].active_user_count) == (2, 1)
    assert roles["auditor"].user_count == 0

    permissions = {u.permission_code: u for u in await store.permission_usage_stats()}
    assert (permissions["requirement.view_all"].role_count, permissions["requirement.view_all"].user_count) == (2, 1)
    assert permissions["analytics.view"].user_count == 0


async def test_seed_catalog_is_idempotent(db, bus, store):
    first = await store.seed_catalog()
    second = await store.seed_catalog()

    assert first == second
    assert {p["code"] for p in db.rows("permissions")} == set(ALL_PERMISSION_CODES)
    assert sorted(r["name"] for r in db.rows("roles")) == ["admin", "employee", "super_admin"]

    super_admin = db.role_by_name("super_admin")
    assert len(db.links_of(super_admin["id"])) == len(ALL_PERMISSION_CODES)
    assert bus.reasons() == ["catalog_seeded", "catalog_seeded"]
