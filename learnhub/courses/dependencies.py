"""FastAPI dependencies for course management.

Provides dependency injection for:
- Course and lesson services
- Course error translation
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.courses.service import CourseError, CourseService, LessonService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "course_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return app_state.course_service


async def get_lesson_service(request: Request) -> LessonService:
    """Get lesson service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "lesson_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lesson service not available",
        )
    return app_state.lesson_service


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "not_authorized": status.HTTP_403_FORBIDDEN,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_in_course": status.HTTP_400_BAD_REQUEST,
        "duplicate_order_value": status.HTTP_400_BAD_REQUEST,
        "invalid_order_value": status.HTTP_400_BAD_REQUEST,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
