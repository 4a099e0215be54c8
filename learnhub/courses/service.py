"""Course management service layer.

Business logic for:
- Course CRUD, publication and ownership checks
- Lesson CRUD with append-only order numbers
- Atomic lesson reordering
- Cascade deletes and media cleanup
"""

from collections.abc import Mapping

import structlog
from sqlalchemy import delete, func, select, update

from learnhub.auth.permissions import Capability, has_capability
from learnhub.auth.schemas import TokenClaims
from learnhub.core.database import Database, utc_now
from learnhub.core.exceptions import AppError
from learnhub.courses.models import Course, Lesson
from learnhub.courses.schemas import (
    CreateCourseRequest,
    CreateLessonRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
)
from learnhub.enrollments.models import Enrollment
from learnhub.progress.models import Progress
from learnhub.storage.service import ObjectStorageService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(AppError):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        super().__init__(message, code)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class NotAuthorizedError(CourseError):
    """Requester may not manage this course."""

    def __init__(self, message: str = "Not allowed to manage this course"):
        super().__init__(message, "not_authorized")


class LessonNotFoundError(CourseError):
    """Lesson not found."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class LessonNotInCourseError(CourseError):
    """Lesson belongs to a different course."""

    def __init__(self, message: str = "Lesson does not belong to this course"):
        super().__init__(message, "lesson_not_in_course")


class DuplicateOrderValueError(CourseError):
    """Two lessons in a reorder batch share a target position."""

    def __init__(self, message: str = "Duplicate order number"):
        super().__init__(message, "duplicate_order_value")


class InvalidOrderValueError(CourseError):
    """Reorder batch is empty or has a negative position."""

    def __init__(self, message: str = "Invalid order number"):
        super().__init__(message, "invalid_order_value")


_CLEARABLE_LESSON_FIELDS = frozenset({"video_url", "file_url"})


def can_manage_course(course: Course, user: TokenClaims) -> bool:
    """Owner or a role allowed to manage every course."""
    return course.teacher_id == user.user_id or has_capability(
        user.role, Capability.MANAGE_ALL_COURSES
    )


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for course management."""

    def __init__(self, db: Database, storage: ObjectStorageService):
        self.db = db
        self.storage = storage

    async def create_course(self, data: CreateCourseRequest, teacher_id: int) -> Course:
        """Create an unpublished course owned by ``teacher_id``."""
        course = Course(
            teacher_id=teacher_id,
            title=data.title,
            description=data.description,
            thumbnail=data.thumbnail,
            is_published=False,
        )
        async with self.db.transaction() as session:
            session.add(course)

        logger.info("course_created", course_id=course.id, teacher_id=teacher_id)
        return course

    async def get_course(self, course_id: int) -> Course:
        """Get a course by ID.

        Raises:
            CourseNotFoundError: If the course doesn't exist
        """
        async with self.db.session() as session:
            course = await session.get(Course, course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def get_visible_course(self, course_id: int, user: TokenClaims) -> Course:
        """Get a course the user may see.

        Unpublished courses are only visible to those who can manage them.

        Raises:
            CourseNotFoundError: If missing or hidden from this user
        """
        course = await self.get_course(course_id)
        if not course.is_published and not can_manage_course(course, user):
            raise CourseNotFoundError
        return course

    async def get_manageable_course(self, course_id: int, user: TokenClaims) -> Course:
        """Get a course the user may modify.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            NotAuthorizedError: If the user neither owns it nor manages all courses
        """
        course = await self.get_course(course_id)
        if not can_manage_course(course, user):
            raise NotAuthorizedError
        return course

    async def list_published(self) -> list[Course]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Course)
                .where(Course.is_published.is_(True))
                .order_by(Course.created_at.desc(), Course.id.desc())
            )
            return list(result.scalars())

    async def list_by_teacher(self, teacher_id: int) -> list[Course]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Course)
                .where(Course.teacher_id == teacher_id)
                .order_by(Course.created_at.desc(), Course.id.desc())
            )
            return list(result.scalars())

    async def update_course(
        self, course_id: int, data: UpdateCourseRequest, user: TokenClaims
    ) -> Course:
        """Update course fields.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            NotAuthorizedError: If the user may not manage it
        """
        async with self.db.transaction() as session:
            course = await session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError
            if not can_manage_course(course, user):
                raise NotAuthorizedError

            old_thumbnail = course.thumbnail
            for field, value in data.model_dump(exclude_unset=True).items():
                if value is None and field != "thumbnail":
                    continue
                setattr(course, field, value)

        if old_thumbnail and old_thumbnail != course.thumbnail:
            await self.storage.cleanup([old_thumbnail])

        logger.info("course_updated", course_id=course_id)
        return course

    async def set_published(
        self, course_id: int, is_published: bool, user: TokenClaims
    ) -> Course:
        """Publish or unpublish a course.

        Unpublishing hides the course from new enrollments; existing
        enrollments are untouched.
        """
        async with self.db.transaction() as session:
            course = await session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError
            if not can_manage_course(course, user):
                raise NotAuthorizedError
            course.is_published = is_published

        logger.info(
            "course_publication_changed",
            course_id=course_id,
            is_published=is_published,
        )
        return course

    async def delete_course(self, course_id: int, user: TokenClaims) -> None:
        """Delete a course with its lessons, enrollments and progress.

        Rows go in one transaction; media files are removed afterwards on a
        best-effort basis.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            NotAuthorizedError: If the user may not manage it
        """
        async with self.db.transaction() as session:
            course = await session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError
            if not can_manage_course(course, user):
                raise NotAuthorizedError

            lessons = (
                await session.execute(
                    select(Lesson).where(Lesson.course_id == course_id)
                )
            ).scalars()
            media = [path for lesson in lessons for path in lesson.media_paths]
            if course.thumbnail:
                media.append(course.thumbnail)

            lesson_ids = select(Lesson.id).where(Lesson.course_id == course_id)
            await session.execute(
                delete(Progress).where(Progress.lesson_id.in_(lesson_ids))
            )
            await session.execute(delete(Lesson).where(Lesson.course_id == course_id))
            await session.execute(
                delete(Enrollment).where(Enrollment.course_id == course_id)
            )
            await session.delete(course)

        logger.info("course_deleted", course_id=course_id, media_files=len(media))
        await self.storage.cleanup(media)


# ==============================================================================
# Lesson Service
# ==============================================================================


class LessonService:
    """Lesson CRUD and ordering within a course."""

    def __init__(self, db: Database, storage: ObjectStorageService):
        self.db = db
        self.storage = storage

    async def append_lesson(self, course_id: int, data: CreateLessonRequest) -> Lesson:
        """Create a lesson at the end of the course.

        The order number is one past the current maximum (1 for the first
        lesson), computed in the insert transaction.

        Raises:
            CourseNotFoundError: If the course doesn't exist
        """
        async with self.db.transaction() as session:
            if await session.get(Course, course_id) is None:
                raise CourseNotFoundError

            last_order = await session.scalar(
                select(func.coalesce(func.max(Lesson.order_number), 0)).where(
                    Lesson.course_id == course_id
                )
            )
            lesson = Lesson(
                course_id=course_id,
                title=data.title,
                content=data.content,
                video_url=data.video_url,
                file_url=data.file_url,
                duration=data.duration,
                order_number=(last_order or 0) + 1,
            )
            session.add(lesson)

        logger.info(
            "lesson_created",
            lesson_id=lesson.id,
            course_id=course_id,
            order_number=lesson.order_number,
        )
        return lesson

    async def get_lesson(self, lesson_id: int, course_id: int | None = None) -> Lesson:
        """Get a lesson, optionally checking it belongs to ``course_id``.

        Raises:
            LessonNotFoundError: If the lesson doesn't exist
            LessonNotInCourseError: If it belongs to another course
        """
        async with self.db.session() as session:
            lesson = await session.get(Lesson, lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        if course_id is not None and lesson.course_id != course_id:
            raise LessonNotInCourseError
        return lesson

    async def list_lessons(self, course_id: int) -> list[Lesson]:
        """Lessons of a course by position, ties broken by ID."""
        async with self.db.session() as session:
            result = await session.execute(
                select(Lesson)
                .where(Lesson.course_id == course_id)
                .order_by(Lesson.order_number.asc(), Lesson.id.asc())
            )
            return list(result.scalars())

    async def update_lesson(
        self, lesson_id: int, data: UpdateLessonRequest, course_id: int | None = None
    ) -> Lesson:
        """Update lesson fields. Never changes ``order_number``.

        Replaced media files are removed from storage after commit.
        """
        async with self.db.transaction() as session:
            lesson = await session.get(Lesson, lesson_id)
            if lesson is None:
                raise LessonNotFoundError
            if course_id is not None and lesson.course_id != course_id:
                raise LessonNotInCourseError

            old_media = set(lesson.media_paths)
            for field, value in data.model_dump(exclude_unset=True).items():
                # Only media keys may be cleared
                if value is None and field not in _CLEARABLE_LESSON_FIELDS:
                    continue
                setattr(lesson, field, value)
            replaced = old_media - set(lesson.media_paths)

        logger.info("lesson_updated", lesson_id=lesson_id)
        await self.storage.cleanup(sorted(replaced))
        return lesson

    async def delete_lesson(self, lesson_id: int, course_id: int | None = None) -> None:
        """Delete a lesson and its progress rows, then its media.

        Remaining lessons keep their order numbers.

        Raises:
            LessonNotFoundError: If the lesson doesn't exist
            LessonNotInCourseError: If it belongs to another course
        """
        async with self.db.transaction() as session:
            lesson = await session.get(Lesson, lesson_id)
            if lesson is None:
                raise LessonNotFoundError
            if course_id is not None and lesson.course_id != course_id:
                raise LessonNotInCourseError

            media = lesson.media_paths
            await session.execute(
                delete(Progress).where(Progress.lesson_id == lesson_id)
            )
            await session.delete(lesson)

        logger.info("lesson_deleted", lesson_id=lesson_id, course_id=lesson.course_id)
        await self.storage.cleanup(media)

    async def reorder(self, course_id: int, orders: Mapping[int, int]) -> None:
        """Assign new order numbers to lessons of one course atomically.

        Every check runs before any write; the updates then share one
        transaction, so either all positions change or none do.

        Args:
            course_id: Course whose lessons are reordered
            orders: Mapping of lesson ID to new order number

        Raises:
            InvalidOrderValueError: If the mapping is empty or a value is negative
            DuplicateOrderValueError: If two lessons get the same value
            LessonNotFoundError: If a lesson doesn't exist (or vanished mid-batch)
            LessonNotInCourseError: If a lesson belongs to another course
        """
        if not orders:
            raise InvalidOrderValueError("No orders provided")

        seen: set[int] = set()
        for order in orders.values():
            if order < 0:
                raise InvalidOrderValueError(
                    f"Invalid order number {order}: must be >= 0"
                )
            if order in seen:
                raise DuplicateOrderValueError(f"Duplicate order number {order}")
            seen.add(order)

        async with self.db.transaction() as session:
            rows = await session.execute(
                select(Lesson.id, Lesson.course_id).where(Lesson.id.in_(list(orders)))
            )
            owners = {lesson_id: owner for lesson_id, owner in rows}

            for lesson_id in sorted(orders):
                if lesson_id not in owners:
                    raise LessonNotFoundError(f"Lesson {lesson_id} not found")
                if owners[lesson_id] != course_id:
                    raise LessonNotInCourseError(
                        f"Lesson {lesson_id} does not belong to course {course_id}"
                    )

            now = utc_now()
            for lesson_id, order in orders.items():
                result = await session.execute(
                    update(Lesson)
                    .where(Lesson.id == lesson_id, Lesson.course_id == course_id)
                    .values(order_number=order, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                # Deleted between the check and the update
                if result.rowcount == 0:
                    raise LessonNotFoundError(f"Lesson {lesson_id} not found")

        logger.info("lessons_reordered", course_id=course_id, lessons=len(orders))
