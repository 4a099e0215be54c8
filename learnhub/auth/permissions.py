"""Role-based access control for LearnHub.

Roles form a closed set. What a role may do is expressed as capabilities,
looked up in a static table; route guards and services ask
``has_capability(role, Capability.X)`` instead of comparing role strings.

- every role may enroll in published courses (except its own) and track progress
- TEACHER: author courses and lessons, view own course enrollments
- ADMIN: manage every course, plus user management
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Capability(str, Enum):
    """Actions gated by role."""

    ENROLL = "enroll"
    TRACK_PROGRESS = "track_progress"
    AUTHOR_COURSES = "author_courses"
    MANAGE_ALL_COURSES = "manage_all_courses"
    MANAGE_USERS = "manage_users"


_LEARNER = frozenset({Capability.ENROLL, Capability.TRACK_PROGRESS})

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.STUDENT: _LEARNER,
    UserRole.TEACHER: _LEARNER | {Capability.AUTHOR_COURSES},
    UserRole.ADMIN: _LEARNER
    | frozenset(
        {
            Capability.AUTHOR_COURSES,
            Capability.MANAGE_ALL_COURSES,
            Capability.MANAGE_USERS,
        }
    ),
}


def parse_role(role: UserRole | str) -> UserRole | None:
    """Convert a raw role value to ``UserRole``.

    Returns:
        The role, or None if the value is not one of the fixed set
    """
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def has_capability(role: UserRole | str, capability: Capability) -> bool:
    """Check if a role grants a capability.

    Unknown roles grant nothing.

    Examples:
        >>> has_capability(UserRole.STUDENT, Capability.ENROLL)
        True
        >>> has_capability("teacher", Capability.MANAGE_USERS)
        False
    """
    parsed = parse_role(role)
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES[parsed]


def capabilities_for(role: UserRole | str) -> frozenset[Capability]:
    """Return every capability granted to a role."""
    parsed = parse_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_CAPABILITIES[parsed]
