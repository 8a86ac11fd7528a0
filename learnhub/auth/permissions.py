"""Role-based access control (RBAC) for LearnHub.

Hierarchical roles, lowest to highest:
- INTERN (level 0): Employee taking assigned courses
- MANAGER (level 1): Sees the progress of their team
- HR (level 2): Manages employees, courses and enrollments
- ADMIN (level 3): Full system access
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    INTERN = "intern"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.INTERN: 0,
    UserRole.MANAGER: 1,
    UserRole.HR: 2,
    UserRole.ADMIN: 3,
}


def parse_role(role: UserRole | str | None) -> UserRole | None:
    """Parse a role claim, tolerating the capitalised names ("HR", "Intern")."""
    if role is None or isinstance(role, UserRole):
        return role
    try:
        return UserRole(role.strip().lower())
    except ValueError:
        return None


def get_role_level(role: UserRole | str | None) -> int:
    """Permission level for a role; unknown roles get the lowest level."""
    parsed = parse_role(role)
    if parsed is None:
        return 0
    return ROLE_HIERARCHY[parsed]


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.HR)
        True
        >>> has_permission("Intern", "manager")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def can_view_employee_progress(
    user_role: UserRole | str, user_id: str, employee_id: str
) -> bool:
    """Employees see their own progress; managers and above see anyone's."""
    if str(user_id) == str(employee_id):
        return True
    return has_permission(user_role, UserRole.MANAGER)
