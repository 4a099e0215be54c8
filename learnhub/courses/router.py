"""Course management API endpoints.

Provides routes for:
- Courses: CRUD and publication
- Lessons: CRUD and reordering within a course
"""

from fastapi import APIRouter, status

from learnhub.auth.dependencies import AuthorUser, CurrentUser
from learnhub.courses.dependencies import (
    CourseServiceDep,
    LessonServiceDep,
    handle_course_error,
)
from learnhub.courses.schemas import (
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    LessonResponse,
    MessageResponse,
    PublishCourseRequest,
    ReorderRequest,
    UpdateCourseRequest,
    UpdateLessonRequest,
)
from learnhub.courses.service import CourseError


# ==============================================================================
# Courses Router
# ==============================================================================

router_courses = APIRouter(prefix="/v1/courses", tags=["courses"])


@router_courses.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    user: AuthorUser,
) -> CourseResponse:
    """Create a new unpublished course (TEACHER or ADMIN only)."""
    course = await course_service.create_course(data, user.user_id)
    return CourseResponse.model_validate(course)


@router_courses.get(
    "",
    response_model=list[CourseResponse],
    summary="List published courses",
)
async def list_published_courses(
    course_service: CourseServiceDep,
    _user: CurrentUser,
) -> list[CourseResponse]:
    courses = await course_service.list_published()
    return [CourseResponse.model_validate(c) for c in courses]


@router_courses.get(
    "/mine",
    response_model=list[CourseResponse],
    summary="List my courses",
)
async def list_my_courses(
    course_service: CourseServiceDep,
    user: AuthorUser,
) -> list[CourseResponse]:
    """List courses owned by the current teacher, published or not."""
    courses = await course_service.list_by_teacher(user.user_id)
    return [CourseResponse.model_validate(c) for c in courses]


@router_courses.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course details",
)
async def get_course(
    course_id: int,
    course_service: CourseServiceDep,
    user: CurrentUser,
) -> CourseResponse:
    try:
        course = await course_service.get_visible_course(course_id, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.model_validate(course)


@router_courses.put(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    course_id: int,
    data: UpdateCourseRequest,
    course_service: CourseServiceDep,
    user: AuthorUser,
) -> CourseResponse:
    try:
        course = await course_service.update_course(course_id, data, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.model_validate(course)


@router_courses.put(
    "/{course_id}/publish",
    response_model=CourseResponse,
    summary="Publish or unpublish course",
)
async def publish_course(
    course_id: int,
    data: PublishCourseRequest,
    course_service: CourseServiceDep,
    user: AuthorUser,
) -> CourseResponse:
    try:
        course = await course_service.set_published(course_id, data.is_published, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.model_validate(course)


@router_courses.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course_id: int,
    course_service: CourseServiceDep,
    user: AuthorUser,
) -> None:
    """Delete a course with its lessons, enrollments and progress."""
    try:
        await course_service.delete_course(course_id, user)
    except CourseError as e:
        raise handle_course_error(e) from e


# ==============================================================================
# Lessons Router
# ==============================================================================

router_lessons = APIRouter(
    prefix="/v1/courses/{course_id}/lessons", tags=["lessons"]
)


@router_lessons.post(
    "",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add lesson at the end of the course",
)
async def create_lesson(
    course_id: int,
    data: CreateLessonRequest,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    user: AuthorUser,
) -> LessonResponse:
    try:
        await course_service.get_manageable_course(course_id, user)
        lesson = await lesson_service.append_lesson(course_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonResponse.model_validate(lesson)


@router_lessons.get(
    "",
    response_model=list[LessonResponse],
    summary="List lessons in order",
)
async def list_lessons(
    course_id: int,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    user: CurrentUser,
) -> list[LessonResponse]:
    try:
        await course_service.get_visible_course(course_id, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    lessons = await lesson_service.list_lessons(course_id)
    return [LessonResponse.model_validate(lesson) for lesson in lessons]


# Declared before "/{lesson_id}" so "reorder" is not parsed as a lesson ID
@router_lessons.put(
    "/reorder",
    response_model=MessageResponse,
    summary="Reorder lessons",
)
async def reorder_lessons(
    course_id: int,
    data: ReorderRequest,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    user: AuthorUser,
) -> MessageResponse:
    """Assign new order numbers to several lessons at once (all or nothing)."""
    try:
        await course_service.get_manageable_course(course_id, user)
        await lesson_service.reorder(course_id, data.orders)
    except CourseError as e:
        raise handle_course_error(e) from e
    return MessageResponse(message="Lessons reordered")


@router_lessons.get(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Get lesson",
)
async def get_lesson(
    course_id: int,
    lesson_id: int,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    user: CurrentUser,
) -> LessonResponse:
    try:
        await course_service.get_visible_course(course_id, user)
        lesson = await lesson_service.get_lesson(lesson_id, course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonResponse.model_validate(lesson)


@router_lessons.put(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson",
)
async def update_lesson(
    course_id: int,
    lesson_id: int,
    data: UpdateLessonRequest,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    user: AuthorUser,
) -> LessonResponse:
    try:
        await course_service.get_manageable_course(course_id, user)
        lesson = await lesson_service.update_lesson(lesson_id, data, course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return LessonResponse.model_validate(lesson)


@router_lessons.delete(
    "/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete lesson",
)
async def delete_lesson(
    course_id: int,
    lesson_id: int,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    user: AuthorUser,
) -> None:
    """Delete a lesson. Remaining lessons keep their order numbers."""
    try:
        await course_service.get_manageable_course(course_id, user)
        await lesson_service.delete_lesson(lesson_id, course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
