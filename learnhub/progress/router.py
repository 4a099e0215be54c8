"""Progress tracking API endpoints."""

from fastapi import APIRouter

from learnhub.auth.dependencies import LearnerUser
from learnhub.progress.dependencies import ProgressServiceDep, handle_progress_error
from learnhub.progress.schemas import (
    CourseProgressResponse,
    LessonProgressResponse,
    MessageResponse,
)
from learnhub.progress.service import ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=CourseProgressResponse,
    summary="Mark lesson as completed",
)
async def mark_lesson_completed(
    lesson_id: int,
    progress_service: ProgressServiceDep,
    user: LearnerUser,
) -> CourseProgressResponse:
    """Mark a lesson completed and return the updated course progress.

    Completing the last lesson completes the enrollment.
    """
    try:
        return await progress_service.mark_completed(user.user_id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@router.delete(
    "/lessons/{lesson_id}/complete",
    response_model=MessageResponse,
    summary="Mark lesson as not completed",
)
async def unmark_lesson_completed(
    lesson_id: int,
    progress_service: ProgressServiceDep,
    user: LearnerUser,
) -> MessageResponse:
    try:
        await progress_service.unmark_completed(user.user_id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return MessageResponse(message="Lesson marked as not completed")


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(
    lesson_id: int,
    progress_service: ProgressServiceDep,
    user: LearnerUser,
) -> LessonProgressResponse:
    try:
        return await progress_service.get_lesson_progress(user.user_id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: int,
    progress_service: ProgressServiceDep,
    user: LearnerUser,
) -> CourseProgressResponse:
    try:
        return await progress_service.get_course_progress(user.user_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@router.get(
    "/courses/{course_id}/lessons",
    response_model=list[LessonProgressResponse],
    summary="List lesson progress for a course",
)
async def list_course_lesson_progress(
    course_id: int,
    progress_service: ProgressServiceDep,
    user: LearnerUser,
) -> list[LessonProgressResponse]:
    try:
        return await progress_service.list_course_progress(user.user_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
