"""Enrollment service layer.

Business logic for:
- Enrolling in published courses and dropping out
- Enrollment status and listings
- The active -> completed transition used by progress tracking

Uniqueness of the current enrollment is left to the store: the partial
unique index on (user_id, course_id) rejects a second non-dropped row, and
that rejection becomes ``AlreadyEnrolledError``.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.schemas import TokenClaims
from learnhub.core.database import Database, utc_now
from learnhub.core.exceptions import AppError
from learnhub.courses.models import Course
from learnhub.courses.service import can_manage_course
from learnhub.enrollments.models import Enrollment, EnrollmentStatus
from learnhub.notifications.client import (
    NotificationDispatcher,
    NotificationType,
    enrollment_message,
)


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentError(AppError):
    """Base enrollment error."""

    def __init__(self, message: str, code: str = "enrollment_error"):
        super().__init__(message, code)


class CourseNotFoundError(EnrollmentError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class CourseNotPublishedError(EnrollmentError):
    """Course is not open for enrollment."""

    def __init__(self, message: str = "Course is not published"):
        super().__init__(message, "course_not_published")


class CannotEnrollOwnCourseError(EnrollmentError):
    """Teachers cannot enroll in their own course."""

    def __init__(self, message: str = "Cannot enroll in your own course"):
        super().__init__(message, "cannot_enroll_own_course")


class AlreadyEnrolledError(EnrollmentError):
    """User already holds a current enrollment in the course."""

    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class EnrollmentNotFoundError(EnrollmentError):
    """No current enrollment for this user and course."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class NotAuthorizedError(EnrollmentError):
    """Requester may not view this course's enrollments."""

    def __init__(
        self, message: str = "Not allowed to view enrollments for this course"
    ):
        super().__init__(message, "not_authorized")


def _current_enrollment_query(user_id: int, course_id: int):
    return (
        select(Enrollment)
        .where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.status != EnrollmentStatus.DROPPED.value,
        )
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .limit(1)
    )


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Service for the enrollment lifecycle."""

    def __init__(self, db: Database, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def enroll(self, user_id: int, course_id: int) -> Enrollment:
        """Enroll a user in a published course.

        The course owner is notified after the enrollment is committed.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            CourseNotPublishedError: If the course is not published
            CannotEnrollOwnCourseError: If the user teaches the course
            AlreadyEnrolledError: If a current enrollment already exists
        """
        async with self.db.session() as session:
            course = await session.get(Course, course_id)

        if course is None:
            raise CourseNotFoundError
        if not course.is_published:
            raise CourseNotPublishedError
        if course.teacher_id == user_id:
            raise CannotEnrollOwnCourseError

        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE.value,
        )
        try:
            async with self.db.transaction() as session:
                session.add(enrollment)
        except IntegrityError as e:
            raise AlreadyEnrolledError from e

        logger.info(
            "user_enrolled",
            enrollment_id=enrollment.id,
            user_id=user_id,
            course_id=course_id,
        )

        title, message = enrollment_message(course.title)
        self.dispatcher.dispatch(
            course.teacher_id, NotificationType.ENROLLMENT, title, message
        )
        return enrollment

    async def unenroll(self, user_id: int, course_id: int) -> Enrollment:
        """Drop the user's current enrollment, active or completed.

        Progress rows and ``completed_at`` are kept as history.

        Raises:
            EnrollmentNotFoundError: If there is no current enrollment
        """
        async with self.db.transaction() as session:
            enrollment = await session.scalar(
                _current_enrollment_query(user_id, course_id)
            )
            if enrollment is None:
                raise EnrollmentNotFoundError
            previous_status = enrollment.status
            enrollment.status = EnrollmentStatus.DROPPED.value

        logger.info(
            "user_unenrolled",
            enrollment_id=enrollment.id,
            user_id=user_id,
            course_id=course_id,
            previous_status=previous_status,
        )
        return enrollment

    async def get_status(self, user_id: int, course_id: int) -> Enrollment | None:
        """Most recent non-dropped enrollment, or None."""
        async with self.db.session() as session:
            return await session.scalar(_current_enrollment_query(user_id, course_id))

    async def is_enrolled(self, user_id: int, course_id: int) -> bool:
        """Active or completed enrollment exists."""
        return await self.get_status(user_id, course_id) is not None

    async def list_for_student(
        self, user_id: int, status: EnrollmentStatus | None = None
    ) -> list[Enrollment]:
        """Enrollment history of a user, newest first, dropped rows included."""
        query = select(Enrollment).where(Enrollment.user_id == user_id)
        if status is not None:
            query = query.where(Enrollment.status == status.value)
        query = query.order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())

        async with self.db.session() as session:
            result = await session.execute(query)
            return list(result.scalars())

    async def list_for_course(
        self, course_id: int, requester: TokenClaims
    ) -> list[Enrollment]:
        """Enrollments of a course, for its owner or an admin.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            NotAuthorizedError: If the requester may not manage the course
        """
        async with self.db.session() as session:
            course = await session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError
            if not can_manage_course(course, requester):
                raise NotAuthorizedError

            result = await session.execute(
                select(Enrollment)
                .where(Enrollment.course_id == course_id)
                .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            )
            return list(result.scalars())

    async def complete(self, session: AsyncSession, enrollment: Enrollment) -> bool:
        """Move an active enrollment to completed inside the caller's transaction.

        Completion is one-way: completed and dropped enrollments are left
        untouched.

        Returns:
            True if the status changed
        """
        if enrollment.status != EnrollmentStatus.ACTIVE.value:
            return False

        enrollment.status = EnrollmentStatus.COMPLETED.value
        enrollment.completed_at = utc_now()
        session.add(enrollment)
        return True

