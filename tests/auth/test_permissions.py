"""Tests for auth permissions."""

import pytest

from learnhub.auth.permissions import (
    ROLE_CAPABILITIES,
    Capability,
    UserRole,
    capabilities_for,
    has_capability,
    parse_role,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.STUDENT.value == "student"
        assert UserRole.TEACHER.value == "teacher"
        assert UserRole.ADMIN.value == "admin"

    def test_all_roles_have_capabilities(self) -> None:
        for role in UserRole:
            assert role in ROLE_CAPABILITIES


class TestParseRole:
    """Tests for parse_role function."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("student", UserRole.STUDENT),
            ("teacher", UserRole.TEACHER),
            ("admin", UserRole.ADMIN),
            (UserRole.ADMIN, UserRole.ADMIN),
        ],
    )
    def test_valid_roles(self, raw: str, expected: UserRole) -> None:
        assert parse_role(raw) == expected

    @pytest.mark.parametrize("raw", ["", "superadmin", "Student", "user"])
    def test_invalid_roles(self, raw: str) -> None:
        assert parse_role(raw) is None


class TestHasCapability:
    """Tests for has_capability function."""

    @pytest.mark.parametrize("role", list(UserRole))
    def test_every_role_can_learn(self, role: UserRole) -> None:
        assert has_capability(role, Capability.ENROLL) is True
        assert has_capability(role, Capability.TRACK_PROGRESS) is True

    def test_student_cannot_author(self) -> None:
        assert has_capability(UserRole.STUDENT, Capability.AUTHOR_COURSES) is False
        assert has_capability(UserRole.STUDENT, Capability.MANAGE_USERS) is False

    def test_teacher_authors_own_courses_only(self) -> None:
        assert has_capability(UserRole.TEACHER, Capability.AUTHOR_COURSES) is True
        assert has_capability(UserRole.TEACHER, Capability.MANAGE_ALL_COURSES) is False
        assert has_capability(UserRole.TEACHER, Capability.MANAGE_USERS) is False

    def test_admin_has_all_capabilities(self) -> None:
        assert capabilities_for(UserRole.ADMIN) == frozenset(Capability)

    def test_string_role(self) -> None:
        assert has_capability("teacher", Capability.AUTHOR_COURSES) is True

    def test_unknown_role_has_nothing(self) -> None:
        assert has_capability("superadmin", Capability.ENROLL) is False
        assert capabilities_for("superadmin") == frozenset()
