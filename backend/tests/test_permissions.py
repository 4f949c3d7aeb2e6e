"""
Role -> permission mapping tests.

Verifies:
- The default mapping validates and every role is covered
- A bad mapping is rejected before it can serve a request
- Each role is granted what its job needs and nothing it must not do
- The perms/system CLI commands read the same mapping
"""

import pytest

from cylinderhub.errors import ForbiddenError
from cylinderhub.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCode as P,
    RoleName,
    get_all_permission_codes,
    get_role_permissions,
    role_has_permission,
    validate_role_mapping,
)
from cylinderhub.services import permission_service


class TestRoleMapping:

    def test_default_mapping_is_valid(self):
        validate_role_mapping()

    def test_every_code_has_a_definition(self):
        assert set(get_all_permission_codes()) == {p.value for p in P}

    def test_unknown_code_rejected(self):
        mapping = {**DEFAULT_ROLE_PERMISSIONS, RoleName.VIEWER: ["READ_EVERYTHING"]}
        with pytest.raises(ValueError, match="READ_EVERYTHING"):
            validate_role_mapping(mapping)

    def test_missing_role_rejected(self):
        mapping = {k: v for k, v in DEFAULT_ROLE_PERMISSIONS.items() if k != RoleName.SELLER}
        with pytest.raises(ValueError, match="SELLER"):
            validate_role_mapping(mapping)

    def test_unknown_role_rejected(self):
        mapping = {**DEFAULT_ROLE_PERMISSIONS, "JANITOR": [P.READ_CYLINDER]}
        with pytest.raises(ValueError, match="JANITOR"):
            validate_role_mapping(mapping)


class TestRoleGrants:

    def test_admin_has_everything(self):
        assert get_role_permissions("ADMIN") == sorted(p.value for p in P)

    @pytest.mark.parametrize("role,code,expected", [
        ("SELLER", "CREATE_SALE", True),
        ("SELLER", "CREATE_FILLING", False),
        ("FILLER", "CREATE_FILLING", True),
        ("FILLER", "CREATE_SALE", False),
        ("INSPECTOR", "CREATE_INSPECTION", True),
        ("INSPECTOR", "CREATE_SALE", False),
        ("INSPECTOR", "CREATE_CYLINDER", False),
        ("MANAGER", "CREATE_SALE", True),
        ("MANAGER", "CREATE_USER", False),
        ("MANAGER", "DELETE_CYLINDER", False),
        ("MANAGER", "CREATE_FACTORY", False),
        ("VIEWER", "READ_SALE", True),
        ("VIEWER", "UPDATE_CYLINDER", False),
    ])
    def test_role_has_permission(self, role, code, expected):
        assert role_has_permission(role, code) is expected

    def test_viewer_is_read_only(self):
        assert all(code.startswith("READ_") for code in get_role_permissions("VIEWER"))

    def test_unknown_role_or_code(self):
        assert role_has_permission("JANITOR", "READ_SALE") is False
        assert role_has_permission("ADMIN", "LAUNCH_ROCKETS") is False
        assert get_role_permissions("JANITOR") == []


class TestPermissionService:

    def test_inactive_user_has_no_permissions(self, make_user):
        from cylinderhub.services import auth_service

        user = make_user(RoleName.SELLER)
        assert "CREATE_SALE" in permission_service.get_user_permissions(user.id)

        auth_service.update_user(user.id, {"is_active": False})

        assert permission_service.get_user_permissions(user.id) == set()
        assert permission_service.user_has_permission(user.id, "CREATE_SALE") is False

    def test_denial_is_logged(self, make_user):
        user = make_user(RoleName.VIEWER)

        with pytest.raises(ForbiddenError) as exc_info:
            permission_service.require_permission(user.id, P.CREATE_SALE, resource="/api/sales")

        assert exc_info.value.status_code == 403
        assert exc_info.value.to_dict()["required_permission"] == "CREATE_SALE"

        events = permission_service.get_security_events(event_type="PERMISSION_DENIED")
        assert len(events) == 1
        assert events[0].user_id == user.id
        assert events[0].action == "CREATE_SALE"
        assert events[0].success is False


class TestCli:

    def test_system_init_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0, first.output
        assert "DONE System initialized" in first.output

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0, second.output
        assert "SKIP User 'admin' already exists" in second.output

    def test_perms_check(self, app, make_user):
        make_user(RoleName.FILLER, username="fred")
        runner = app.test_cli_runner()

        granted = runner.invoke(args=["perms", "check", "fred", "create_filling"])
        assert "PASS fred (FILLER) HAS permission: CREATE_FILLING" in granted.output

        denied = runner.invoke(args=["perms", "check", "fred", "CREATE_SALE"])
        assert "DOES NOT HAVE" in denied.output

    def test_perms_list_for_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "viewer"])
        assert result.exit_code == 0
        assert "READ_CYLINDER" in result.output
        assert "CREATE_SALE" not in result.output
