# tests/test_permission_resolution.py

"""
Tests for effective permission resolution and the degraded fallback.
"""

import logging

import pytest

from core.errors import DEGRADED_PERMISSION_MODE
from core.legacy_permissions import fallback_permissions
from models.enums import ResolutionMode


pytestmark = pytest.mark.asyncio


async def test_union_of_active_roles(db, resolver):
    r1 = db.add_role("r1", codes=["requirement.view_all", "requirement.create"])
    r2 = db.add_role("r2", codes=["requirement.create", "comment.create"])
    db.add_user("u")
    db.assign("u", r1["id"])
    db.assign("u", r2["id"])

    result = await resolver.resolve("u")

    assert result.mode == ResolutionMode.resolved
    assert result.permission_codes == {"requirement.view_all", "requirement.create", "comment.create"}
    assert sorted(r.name for r in result.roles) == ["r1", "r2"]


async def test_inactive_user_resolves_to_nothing(db, resolver):
    role = db.add_role("super", codes=["system.manage", "user.manage"])
    db.add_user("u", role="super_admin", active=False)
    db.assign("u", role["id"])

    result = await resolver.resolve("u")

    assert result.permission_codes == frozenset()
    assert result.mode == ResolutionMode.inactive


async def test_missing_user_resolves_to_nothing(resolver):
    result = await resolver.resolve("ghost", legacy_role="admin")

    assert result.permission_codes == frozenset()
    assert result.mode == ResolutionMode.inactive


async def test_inactive_permissions_roles_and_assignments_are_skipped(db, resolver):
    live = db.add_role("live", codes=["requirement.create"])
    db.add_permission("requirement.delete_all", is_active=False)
    db.link(live["id"], db.permission_by_code("requirement.delete_all")["id"])
    dormant = db.add_role("dormant", codes=["user.manage"], is_active=False)
    parked = db.add_role("parked", codes=["analytics.view"])
    db.add_user("u")
    db.assign("u", live["id"])
    db.assign("u", dormant["id"])
    db.assign("u", parked["id"], is_active=False)

    result = await resolver.resolve("u")

    assert result.permission_codes == {"requirement.create"}
    assert [r.name for r in result.roles] == ["live"]


async def test_legacy_role_is_listed_first_and_primary(db, resolver):
    employee = db.add_role("employee", codes=["requirement.create"])
    extra = db.add_role("a_reviewer", codes=["requirement.view_all"])
    db.add_user("u", role="employee")
    db.assign("u", extra["id"])
    db.assign("u", employee["id"])

    result = await resolver.resolve("u")

    assert [(r.name, r.is_primary) for r in result.roles] == [("employee", True), ("a_reviewer", False)]


async def test_resolution_is_idempotent(db, resolver):
    role = db.add_role("r", codes=["requirement.view_all", "comment.create"])
    db.add_user("u")
    db.assign("u", role["id"])

    first = await resolver.resolve("u")
    second = await resolver.resolve("u")

    assert first == second


async def test_reviewer_scenario(db, store, resolver):
    reviewer = db.add_role("reviewer", codes=["requirement.view_all"])
    db.add_user("x")
    db.assign("x", reviewer["id"])

    result = await resolver.resolve("x")

    assert result.permission_codes == {"requirement.view_all"}
    assert "requirement.edit_all" not in result.permission_codes


# ============================================================
# Degraded mode
# ============================================================
async def test_assignment_failure_falls_back_to_employee_tier(db, resolver, caplog):
    db.add_user("y", role="employee")
    db.fail("user_roles")

    with caplog.at_level(logging.WARNING, logger="reqhub"):
        result = await resolver.resolve("y")

    assert result.mode == ResolutionMode.degraded
    assert result.is_degraded
    assert result.permission_codes == {
        "requirement.create",
        "requirement.view_own",
        "requirement.edit_own",
        "requirement.status_update_own",
        "comment.create",
    }
    assert any(DEGRADED_PERMISSION_MODE in record.getMessage() for record in caplog.records)


async def test_fallback_uses_stored_legacy_role_over_hint(db, resolver):
    db.add_user("a", role="admin")
    db.fail("user_roles")

    result = await resolver.resolve("a", legacy_role="employee")

    assert result.permission_codes == fallback_permissions("admin")
    assert result.roles[0].name == "admin"


async def test_fallback_uses_hint_when_user_row_is_unreadable(db, resolver):
    db.fail("users")

    result = await resolver.resolve("a", legacy_role="super_admin")

    assert result.mode == ResolutionMode.degraded
    assert result.permission_codes == fallback_permissions("super_admin")


async def test_unknown_legacy_role_falls_back_to_employee(db, resolver):
    db.fail()

    result = await resolver.resolve("z", legacy_role="contractor")

    assert result.permission_codes == fallback_permissions("employee")


async def test_timeout_is_treated_like_any_failure(db, resolver):
    db.add_user("t", role="admin")
    db.fail("user_roles", error=TimeoutError("read timed out"))

    result = await resolver.resolve("t")

    assert result.mode == ResolutionMode.degraded


async def test_malformed_user_row_falls_back_to_hint(db, resolver):
    db.add_user("m", role="admin", active=None)

    result = await resolver.resolve("m", legacy_role="admin")

    assert result.mode == ResolutionMode.degraded
    assert result.permission_codes == fallback_permissions("admin")


async def test_malformed_assignment_row_degrades(db, resolver):
    db.add_user("m", role="admin")
    db.assign("m", None)

    result = await resolver.resolve("m")

    assert result.mode == ResolutionMode.degraded
    assert result.permission_codes == fallback_permissions("admin")
