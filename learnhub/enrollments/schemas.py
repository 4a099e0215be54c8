"""Pydantic schemas for enrollments."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from learnhub.enrollments.models import EnrollmentStatus


class EnrollRequest(BaseModel):
    """Enroll the current user in a course."""

    course_id: int = Field(..., gt=0, description="Course to enroll in")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus
    enrolled_at: datetime
    completed_at: datetime | None = None


class EnrollmentStatusResponse(BaseModel):
    """Whether the current user holds a current enrollment in a course."""

    enrolled: bool
    enrollment: EnrollmentResponse | None = None


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
