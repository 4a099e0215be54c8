"""Tests for progress tracking and the completion trigger."""

from collections.abc import Awaitable, Callable
from unittest.mock import AsyncMock

import pytest

from learnhub.auth.models import User
from learnhub.auth.permissions import UserRole
from learnhub.courses.models import Course
from learnhub.courses.schemas import CreateCourseRequest, CreateLessonRequest
from learnhub.courses.service import CourseService, LessonService
from learnhub.enrollments.models import EnrollmentStatus
from learnhub.enrollments.service import EnrollmentService
from learnhub.notifications.client import NotificationDispatcher, NotificationType
from learnhub.progress.service import (
    LessonNotFoundError,
    NotEnrolledError,
    ProgressService,
    build_course_progress,
)
from tests.conftest import claims_for


MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture
async def teacher(make_user: MakeUser) -> User:
    return await make_user(UserRole.TEACHER)


@pytest.fixture
async def student(make_user: MakeUser) -> User:
    return await make_user(UserRole.STUDENT)


@pytest.fixture
async def course(course_service: CourseService, teacher: User) -> Course:
    course = await course_service.create_course(
        CreateCourseRequest(title="Pharmacokinetics"), teacher.id
    )
    return await course_service.set_published(course.id, True, claims_for(teacher))


@pytest.fixture
async def lesson_ids(lesson_service: LessonService, course: Course) -> list[int]:
    ids = []
    for title in ("Absorption", "Distribution", "Elimination"):
        lesson = await lesson_service.append_lesson(
            course.id, CreateLessonRequest(title=title)
        )
        ids.append(lesson.id)
    return ids


@pytest.fixture
async def enrolled(
    enrollment_service: EnrollmentService,
    dispatcher: NotificationDispatcher,
    notifier: AsyncMock,
    course: Course,
    student: User,
) -> User:
    await enrollment_service.enroll(student.id, course.id)
    await dispatcher.drain()
    notifier.reset_mock()
    return student


class TestBuildCourseProgress:
    """Tests for the progress arithmetic."""

    def test_partial(self) -> None:
        progress = build_course_progress(7, 3, 1)
        assert progress.percentage == pytest.approx(100.0 / 3)
        assert progress.is_complete is False

    def test_complete(self) -> None:
        progress = build_course_progress(7, 3, 3)
        assert progress.percentage == 100.0
        assert progress.is_complete is True

    def test_zero_lessons_never_complete(self) -> None:
        progress = build_course_progress(7, 0, 0)
        assert progress.percentage == 0.0
        assert progress.is_complete is False


class TestMarkCompleted:
    """Tests for ProgressService.mark_completed."""

    @pytest.mark.asyncio
    async def test_all_lessons_complete_the_enrollment(
        self,
        progress_service: ProgressService,
        enrollment_service: EnrollmentService,
        dispatcher: NotificationDispatcher,
        notifier: AsyncMock,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        for lesson_id in lesson_ids:
            summary = await progress_service.mark_completed(enrolled.id, lesson_id)
        await dispatcher.drain()

        assert summary.percentage == 100.0
        assert summary.is_complete is True

        enrollment = await enrollment_service.get_status(enrolled.id, course.id)
        assert enrollment is not None
        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.completed_at is not None

        notifier.send_notification.assert_awaited_once_with(
            enrolled.id,
            NotificationType.COMPLETED,
            "Course Completed",
            "Congratulations! You have completed the course: Pharmacokinetics",
        )

    @pytest.mark.asyncio
    async def test_all_but_one_stays_active(
        self,
        progress_service: ProgressService,
        enrollment_service: EnrollmentService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        for lesson_id in lesson_ids[:-1]:
            summary = await progress_service.mark_completed(enrolled.id, lesson_id)

        assert summary.completed_lessons == 2
        assert summary.total_lessons == 3
        assert summary.is_complete is False

        enrollment = await enrollment_service.get_status(enrolled.id, course.id)
        assert enrollment is not None
        assert enrollment.status == EnrollmentStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_marking_twice_is_idempotent(
        self,
        progress_service: ProgressService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        await progress_service.mark_completed(enrolled.id, lesson_ids[0])
        summary = await progress_service.mark_completed(enrolled.id, lesson_ids[0])

        assert summary.completed_lessons == 1
        rows = await progress_service.list_course_progress(enrolled.id, course.id)
        assert [row.completed for row in rows] == [True, False, False]

    @pytest.mark.asyncio
    async def test_completion_notified_once(
        self,
        progress_service: ProgressService,
        dispatcher: NotificationDispatcher,
        notifier: AsyncMock,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        for lesson_id in lesson_ids:
            await progress_service.mark_completed(enrolled.id, lesson_id)
        await progress_service.mark_completed(enrolled.id, lesson_ids[0])
        await dispatcher.drain()

        assert notifier.send_notification.await_count == 1

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self,
        progress_service: ProgressService,
        lesson_ids: list[int],
        student: User,
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.mark_completed(student.id, lesson_ids[0])

    @pytest.mark.asyncio
    async def test_dropped_enrollment_cannot_track(
        self,
        progress_service: ProgressService,
        enrollment_service: EnrollmentService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        await enrollment_service.unenroll(enrolled.id, course.id)
        with pytest.raises(NotEnrolledError):
            await progress_service.mark_completed(enrolled.id, lesson_ids[0])

    @pytest.mark.asyncio
    async def test_unknown_lesson(
        self, progress_service: ProgressService, enrolled: User
    ) -> None:
        with pytest.raises(LessonNotFoundError):
            await progress_service.mark_completed(enrolled.id, 999)

    @pytest.mark.asyncio
    async def test_lesson_added_after_completion_counts(
        self,
        progress_service: ProgressService,
        lesson_service: LessonService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        for lesson_id in lesson_ids[:2]:
            await progress_service.mark_completed(enrolled.id, lesson_id)
        await lesson_service.append_lesson(
            course.id, CreateLessonRequest(title="Bonus")
        )

        summary = await progress_service.mark_completed(enrolled.id, lesson_ids[2])
        assert summary.total_lessons == 4
        assert summary.is_complete is False


class TestUnmarkCompleted:
    """Tests for ProgressService.unmark_completed."""

    @pytest.mark.asyncio
    async def test_unmark_removes_record(
        self,
        progress_service: ProgressService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        await progress_service.mark_completed(enrolled.id, lesson_ids[0])

        assert await progress_service.unmark_completed(enrolled.id, lesson_ids[0])
        assert not await progress_service.unmark_completed(enrolled.id, lesson_ids[0])

        lesson = await progress_service.get_lesson_progress(enrolled.id, lesson_ids[0])
        assert lesson.completed is False
        assert lesson.completed_at is None

    @pytest.mark.asyncio
    async def test_unmark_never_reverts_completion(
        self,
        progress_service: ProgressService,
        enrollment_service: EnrollmentService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        for lesson_id in lesson_ids:
            await progress_service.mark_completed(enrolled.id, lesson_id)
        await progress_service.unmark_completed(enrolled.id, lesson_ids[1])

        enrollment = await enrollment_service.get_status(enrolled.id, course.id)
        assert enrollment is not None
        assert enrollment.status == EnrollmentStatus.COMPLETED.value

        summary = await progress_service.get_course_progress(enrolled.id, course.id)
        assert summary.completed_lessons == 2
        assert summary.is_complete is False

    @pytest.mark.asyncio
    async def test_unknown_lesson(
        self, progress_service: ProgressService, enrolled: User
    ) -> None:
        with pytest.raises(LessonNotFoundError):
            await progress_service.unmark_completed(enrolled.id, 999)


class TestCourseProgress:
    """Tests for ProgressService.get_course_progress."""

    @pytest.mark.asyncio
    async def test_empty_course(
        self,
        progress_service: ProgressService,
        course: Course,
        enrolled: User,
    ) -> None:
        summary = await progress_service.get_course_progress(enrolled.id, course.id)
        assert summary.total_lessons == 0
        assert summary.percentage == 0.0
        assert summary.is_complete is False

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self,
        progress_service: ProgressService,
        course: Course,
        student: User,
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.get_course_progress(student.id, course.id)

    @pytest.mark.asyncio
    async def test_lost_completion_is_recovered(
        self,
        progress_service: ProgressService,
        enrollment_service: EnrollmentService,
        lesson_service: LessonService,
        dispatcher: NotificationDispatcher,
        notifier: AsyncMock,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        """Rows show every lesson done but the enrollment is still active."""
        for lesson_id in lesson_ids[:2]:
            await progress_service.mark_completed(enrolled.id, lesson_id)
        # Deleting the only unfinished lesson bypasses the completion trigger
        await lesson_service.delete_lesson(lesson_ids[2], course.id)

        before = await enrollment_service.get_status(enrolled.id, course.id)
        assert before is not None
        assert before.status == EnrollmentStatus.ACTIVE.value

        summary = await progress_service.get_course_progress(enrolled.id, course.id)
        assert summary.is_complete is True

        after = await enrollment_service.get_status(enrolled.id, course.id)
        assert after is not None
        assert after.status == EnrollmentStatus.COMPLETED.value

        await dispatcher.drain()
        notifier.send_notification.assert_awaited_once_with(
            enrolled.id,
            NotificationType.COMPLETED,
            "Course Completed",
            "Congratulations! You have completed the course: Pharmacokinetics",
        )

    @pytest.mark.asyncio
    async def test_lesson_listing_in_order(
        self,
        progress_service: ProgressService,
        lesson_service: LessonService,
        course: Course,
        lesson_ids: list[int],
        enrolled: User,
    ) -> None:
        await lesson_service.reorder(course.id, {lesson_ids[2]: 0})
        await progress_service.mark_completed(enrolled.id, lesson_ids[2])

        rows = await progress_service.list_course_progress(enrolled.id, course.id)
        assert [row.lesson_id for row in rows] == [
            lesson_ids[2],
            lesson_ids[0],
            lesson_ids[1],
        ]
        assert [row.completed for row in rows] == [True, False, False]
