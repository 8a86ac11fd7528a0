"""Tests for auth permissions."""

import pytest

from learnhub.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    can_view_employee_progress,
    get_role_level,
    has_permission,
    parse_role,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.INTERN.value == "intern"
        assert UserRole.MANAGER.value == "manager"
        assert UserRole.HR.value == "hr"
        assert UserRole.ADMIN.value == "admin"

    def test_all_roles_have_levels(self) -> None:
        """All UserRole members should have defined levels."""
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestParseRole:
    """Tests for parse_role."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("intern", UserRole.INTERN),
            ("Intern", UserRole.INTERN),
            ("HR", UserRole.HR),
            (" admin ", UserRole.ADMIN),
            (UserRole.MANAGER, UserRole.MANAGER),
        ],
    )
    def test_known_roles(self, raw: str | UserRole, expected: UserRole) -> None:
        """Role claims are matched case-insensitively."""
        assert parse_role(raw) is expected

    def test_unknown_role(self) -> None:
        """Unknown or missing roles parse to None."""
        assert parse_role("superadmin") is None
        assert parse_role(None) is None


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.INTERN, 0),
            (UserRole.MANAGER, 1),
            (UserRole.HR, 2),
            (UserRole.ADMIN, 3),
            ("hr", 2),
        ],
    )
    def test_levels(self, role: UserRole | str, expected_level: int) -> None:
        """Should return correct level for enum and string roles."""
        assert get_role_level(role) == expected_level

    def test_invalid_role_returns_zero(self) -> None:
        """Invalid roles should return level 0."""
        assert get_role_level("invalid") == 0


class TestHasPermission:
    """Tests for has_permission function."""

    def test_admin_has_all_permissions(self) -> None:
        """Admin should have access to all role levels."""
        for role in UserRole:
            assert has_permission(UserRole.ADMIN, role) is True

    def test_hr_below_admin(self) -> None:
        """HR manages content but is not an admin."""
        assert has_permission(UserRole.HR, UserRole.MANAGER) is True
        assert has_permission(UserRole.HR, UserRole.ADMIN) is False

    def test_intern_lowest(self) -> None:
        """Interns only satisfy the intern level."""
        assert has_permission(UserRole.INTERN, UserRole.INTERN) is True
        assert has_permission(UserRole.INTERN, UserRole.MANAGER) is False


class TestCanViewEmployeeProgress:
    """Tests for progress visibility."""

    def test_own_progress(self) -> None:
        """Anyone may read their own progress."""
        assert can_view_employee_progress(UserRole.INTERN, "abc", "abc") is True

    def test_other_employee_as_intern(self) -> None:
        """Interns cannot read someone else's progress."""
        assert can_view_employee_progress(UserRole.INTERN, "abc", "xyz") is False

    def test_other_employee_as_manager(self) -> None:
        """Managers and above read anyone's progress."""
        assert can_view_employee_progress(UserRole.MANAGER, "abc", "xyz") is True
        assert can_view_employee_progress("hr", "abc", "xyz") is True
