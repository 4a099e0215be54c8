"""Pydantic schemas for progress tracking."""

from datetime import datetime

from pydantic import BaseModel, Field


class CourseProgressResponse(BaseModel):
    """Aggregated progress of one user in one course.

    ``percentage`` is 0.0 for a course without lessons, and such a course is
    never complete.
    """

    course_id: int
    total_lessons: int = Field(..., ge=0)
    completed_lessons: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)
    is_complete: bool


class LessonProgressResponse(BaseModel):
    """Completion state of one lesson for one user."""

    lesson_id: int
    course_id: int
    order_number: int | None = None
    completed: bool
    completed_at: datetime | None = None


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
