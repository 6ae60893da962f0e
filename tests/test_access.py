"""Tests for actor permission normalization and roles."""

from workforce_payroll.services.access import (
    ActorContext,
    Role,
    normalize_permissions,
    resolve_role,
)


class TestPermissions:
    """Test both permission payload shapes."""

    def test_list_and_map_shapes(self):
        assert normalize_permissions(["approval.view"]) == frozenset({"approval.view"})
        assert normalize_permissions(
            {"approval.view": True, "approval.manage": False}
        ) == frozenset({"approval.view"})
        assert normalize_permissions("approval.view, payroll.manage") == frozenset(
            {"approval.view", "payroll.manage"}
        )
        assert normalize_permissions(None) == frozenset()

    def test_highest_role_wins(self):
        assert resolve_role(frozenset({"approval.view", "approval.override"})) == Role.ADMIN
        assert resolve_role(frozenset({"approval.manage"})) == Role.HR
        assert resolve_role(frozenset({"approval.view"})) == Role.MANAGER
        assert resolve_role(frozenset()) == Role.EMPLOYEE

    def test_actor_context(self):
        actor = ActorContext.from_claims("emp-1", None, {"approval.manage": True})
        assert actor.actor_name == "emp-1"
        assert actor.is_hr_or_admin is True
        assert actor.is_admin is False
        assert actor.has("approval.manage")
