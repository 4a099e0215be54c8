"""Progress tracking service layer.

Business logic for:
- Marking lessons complete and incomplete
- Course progress aggregation
- Automatic completion of the enrollment once every lesson is done

Completion is always derived from stored rows: the lesson count and the
user's progress rows are counted inside the same transaction that wrote the
progress row, so a concurrent lesson insert or delete cannot be missed.
"""

from datetime import datetime

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.database import Database
from learnhub.core.exceptions import AppError
from learnhub.courses.models import Course, Lesson
from learnhub.enrollments.models import ENROLLED_STATUSES, Enrollment
from learnhub.enrollments.service import EnrollmentService
from learnhub.notifications.client import (
    NotificationDispatcher,
    NotificationType,
    completion_message,
)
from learnhub.progress.models import Progress
from learnhub.progress.schemas import CourseProgressResponse, LessonProgressResponse


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(AppError):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        super().__init__(message, code)


class LessonNotFoundError(ProgressError):
    """Lesson not found."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class NotEnrolledError(ProgressError):
    """User has no active or completed enrollment in the course."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "not_enrolled")


def build_course_progress(
    course_id: int, total_lessons: int, completed_lessons: int
) -> CourseProgressResponse:
    """Aggregate counts into a progress summary.

    >>> build_course_progress(1, 4, 1).percentage
    25.0
    >>> build_course_progress(1, 0, 0).is_complete
    False
    """
    percentage = (
        completed_lessons / total_lessons * 100.0 if total_lessons > 0 else 0.0
    )
    return CourseProgressResponse(
        course_id=course_id,
        total_lessons=total_lessons,
        completed_lessons=completed_lessons,
        percentage=percentage,
        is_complete=total_lessons > 0 and completed_lessons >= total_lessons,
    )


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for lesson completion and course progress."""

    def __init__(
        self,
        db: Database,
        enrollments: EnrollmentService,
        dispatcher: NotificationDispatcher,
    ):
        self.db = db
        self.enrollments = enrollments
        self.dispatcher = dispatcher

    # ==========================================================================
    # Queries shared by the operations below
    # ==========================================================================

    async def _get_enrollment(
        self, session: AsyncSession, user_id: int, course_id: int
    ) -> Enrollment | None:
        return await session.scalar(
            select(Enrollment)
            .where(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
                Enrollment.status.in_(ENROLLED_STATUSES),
            )
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
            .limit(1)
        )

    async def _count(
        self, session: AsyncSession, user_id: int, course_id: int
    ) -> CourseProgressResponse:
        total = await session.scalar(
            select(func.count(Lesson.id)).where(Lesson.course_id == course_id)
        )
        completed = await session.scalar(
            select(func.count(Progress.id))
            .join(Lesson, Lesson.id == Progress.lesson_id)
            .where(Progress.user_id == user_id, Lesson.course_id == course_id)
        )
        return build_course_progress(course_id, total or 0, completed or 0)

    async def _complete_enrollment(
        self, session: AsyncSession, enrollment: Enrollment
    ) -> str | None:
        """Complete the enrollment; return the course title if it changed."""
        if not await self.enrollments.complete(session, enrollment):
            return None
        return await session.scalar(
            select(Course.title).where(Course.id == enrollment.course_id)
        )

    def _notify_completed(
        self, user_id: int, course_id: int, course_title: str, *, healed: bool = False
    ) -> None:
        logger.info(
            "enrollment_completed",
            user_id=user_id,
            course_id=course_id,
            healed=healed,
        )
        title, message = completion_message(course_title)
        self.dispatcher.dispatch(user_id, NotificationType.COMPLETED, title, message)

    # ==========================================================================
    # Completion Operations
    # ==========================================================================

    async def mark_completed(
        self, user_id: int, lesson_id: int
    ) -> CourseProgressResponse:
        """Record lesson completion and complete the course when it was the last.

        Idempotent: marking an already completed lesson changes nothing. A
        concurrent duplicate insert is retried once, and the retry finds the
        existing row.

        Raises:
            LessonNotFoundError: If the lesson doesn't exist
            NotEnrolledError: If the user has no current enrollment in its course
        """
        try:
            return await self._mark_completed(user_id, lesson_id)
        except IntegrityError:
            logger.info(
                "progress_insert_conflict", user_id=user_id, lesson_id=lesson_id
            )
            return await self._mark_completed(user_id, lesson_id)

    async def _mark_completed(
        self, user_id: int, lesson_id: int
    ) -> CourseProgressResponse:
        completed_title: str | None = None

        async with self.db.transaction() as session:
            lesson = await session.get(Lesson, lesson_id)
            if lesson is None:
                raise LessonNotFoundError
            course_id = lesson.course_id

            enrollment = await self._get_enrollment(session, user_id, course_id)
            if enrollment is None:
                raise NotEnrolledError

            existing = await session.scalar(
                select(Progress.id).where(
                    Progress.user_id == user_id, Progress.lesson_id == lesson_id
                )
            )
            if existing is None:
                session.add(Progress(user_id=user_id, lesson_id=lesson_id))
                await session.flush()
                logger.info(
                    "lesson_completed",
                    user_id=user_id,
                    lesson_id=lesson_id,
                    course_id=course_id,
                )

            summary = await self._count(session, user_id, course_id)
            if summary.is_complete:
                completed_title = await self._complete_enrollment(session, enrollment)

        if completed_title is not None:
            self._notify_completed(user_id, course_id, completed_title)
        return summary

    async def unmark_completed(self, user_id: int, lesson_id: int) -> bool:
        """Remove the completion record of a lesson.

        A completed enrollment stays completed.

        Returns:
            True if a record was removed

        Raises:
            LessonNotFoundError: If the lesson doesn't exist
        """
        async with self.db.transaction() as session:
            if await session.get(Lesson, lesson_id) is None:
                raise LessonNotFoundError
            result = await session.execute(
                delete(Progress).where(
                    Progress.user_id == user_id, Progress.lesson_id == lesson_id
                )
            )

        removed = result.rowcount > 0
        if removed:
            logger.info("lesson_uncompleted", user_id=user_id, lesson_id=lesson_id)
        return removed

    # ==========================================================================
    # Progress Queries
    # ==========================================================================

    async def get_course_progress(
        self, user_id: int, course_id: int
    ) -> CourseProgressResponse:
        """Progress of a user in a course.

        If the stored rows show every lesson done while the enrollment is
        still active, the enrollment is completed here.

        Raises:
            NotEnrolledError: If the user has no current enrollment
        """
        healed_title: str | None = None

        async with self.db.transaction() as session:
            enrollment = await self._get_enrollment(session, user_id, course_id)
            if enrollment is None:
                raise NotEnrolledError

            summary = await self._count(session, user_id, course_id)
            if summary.is_complete and enrollment.is_active:
                healed_title = await self._complete_enrollment(session, enrollment)

        if healed_title is not None:
            self._notify_completed(user_id, course_id, healed_title, healed=True)
        return summary

    async def get_lesson_progress(
        self, user_id: int, lesson_id: int
    ) -> LessonProgressResponse:
        """Completion state of one lesson.

        Raises:
            LessonNotFoundError: If the lesson doesn't exist
        """
        async with self.db.session() as session:
            lesson = await session.get(Lesson, lesson_id)
            if lesson is None:
                raise LessonNotFoundError
            completed_at: datetime | None = await session.scalar(
                select(Progress.completed_at).where(
                    Progress.user_id == user_id, Progress.lesson_id == lesson_id
                )
            )

        return LessonProgressResponse(
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            order_number=lesson.order_number,
            completed=completed_at is not None,
            completed_at=completed_at,
        )

    async def list_course_progress(
        self, user_id: int, course_id: int
    ) -> list[LessonProgressResponse]:
        """Per-lesson completion for every lesson of a course, in lesson order.

        Raises:
            NotEnrolledError: If the user has no current enrollment
        """
        async with self.db.session() as session:
            if await self._get_enrollment(session, user_id, course_id) is None:
                raise NotEnrolledError

            rows = await session.execute(
                select(Lesson.id, Lesson.order_number, Progress.completed_at)
                .outerjoin(
                    Progress,
                    (Progress.lesson_id == Lesson.id) & (Progress.user_id == user_id),
                )
                .where(Lesson.course_id == course_id)
                .order_by(Lesson.order_number.asc(), Lesson.id.asc())
            )

            return [
                LessonProgressResponse(
                    lesson_id=lesson_id,
                    course_id=course_id,
                    order_number=order_number,
                    completed=completed_at is not None,
                    completed_at=completed_at,
                )
                for lesson_id, order_number, completed_at in rows
            ]
