"""Pydantic schemas for course management.

Request and response models for:
- Courses: CRUD and publication
- Lessons: CRUD within a course
- Reordering lessons
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=1, max_length=255, description="Course title")
    description: str = Field("", max_length=10000, description="Course description")
    thumbnail: str | None = Field(
        None, max_length=500, description="Thumbnail object-storage key"
    )


class UpdateCourseRequest(BaseModel):
    """Course update request."""

    title: str | None = Field(
        None, min_length=1, max_length=255, description="Course title"
    )
    description: str | None = Field(
        None, max_length=10000, description="Course description"
    )
    thumbnail: str | None = Field(
        None, max_length=500, description="Thumbnail object-storage key"
    )


class PublishCourseRequest(BaseModel):
    """Publish or unpublish a course."""

    is_published: bool = Field(..., description="Whether students can enroll")


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    teacher_id: int
    title: str
    description: str
    thumbnail: str | None = None
    is_published: bool
    created_at: datetime
    updated_at: datetime | None = None


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class CreateLessonRequest(BaseModel):
    """Lesson creation request.

    The lesson is appended after the course's current last lesson.
    """

    title: str = Field(..., min_length=1, max_length=255, description="Lesson title")
    content: str = Field("", description="Lesson body")
    video_url: str | None = Field(
        None, max_length=500, description="Video object-storage key"
    )
    file_url: str | None = Field(
        None, max_length=500, description="Attachment object-storage key"
    )
    duration: int = Field(0, ge=0, description="Duration in minutes")


class UpdateLessonRequest(BaseModel):
    """Lesson update request. Position changes go through reorder."""

    title: str | None = Field(
        None, min_length=1, max_length=255, description="Lesson title"
    )
    content: str | None = Field(None, description="Lesson body")
    video_url: str | None = Field(
        None, max_length=500, description="Video object-storage key"
    )
    file_url: str | None = Field(
        None, max_length=500, description="Attachment object-storage key"
    )
    duration: int | None = Field(None, ge=0, description="Duration in minutes")


class LessonResponse(BaseModel):
    """Lesson response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    content: str
    video_url: str | None = None
    file_url: str | None = None
    duration: int
    order_number: int
    created_at: datetime
    updated_at: datetime | None = None


class ReorderRequest(BaseModel):
    """New positions for lessons of one course."""

    orders: dict[int, int] = Field(
        ..., description="Mapping of lesson ID to new order number"
    )


# ==============================================================================
# Message Response
# ==============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
