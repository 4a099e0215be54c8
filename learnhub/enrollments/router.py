"""Enrollment API endpoints."""

from fastapi import APIRouter, Query, status

from learnhub.auth.dependencies import AuthorUser, StudentUser
from learnhub.enrollments.dependencies import (
    EnrollmentServiceDep,
    handle_enrollment_error,
)
from learnhub.enrollments.models import EnrollmentStatus
from learnhub.enrollments.schemas import (
    EnrollmentResponse,
    EnrollmentStatusResponse,
    EnrollRequest,
    MessageResponse,
)
from learnhub.enrollments.service import EnrollmentError


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll(
    data: EnrollRequest,
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentResponse:
    """Enroll the current user in a published course."""
    try:
        enrollment = await enrollment_service.enroll(user.user_id, data.course_id)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.model_validate(enrollment)


@router.delete(
    "/{course_id}",
    response_model=MessageResponse,
    summary="Unenroll from course",
)
async def unenroll(
    course_id: int,
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> MessageResponse:
    try:
        await enrollment_service.unenroll(user.user_id, course_id)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return MessageResponse(message="Unenrolled successfully")


@router.get(
    "/me",
    response_model=list[EnrollmentResponse],
    summary="List my enrollments",
)
async def list_my_enrollments(
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
    enrollment_status: EnrollmentStatus | None = Query(None, alias="status"),
) -> list[EnrollmentResponse]:
    """Full enrollment history, newest first, optionally filtered by status."""
    enrollments = await enrollment_service.list_for_student(
        user.user_id, enrollment_status
    )
    return [EnrollmentResponse.model_validate(e) for e in enrollments]


@router.get(
    "/courses/{course_id}/status",
    response_model=EnrollmentStatusResponse,
    summary="Get my enrollment status for a course",
)
async def get_enrollment_status(
    course_id: int,
    enrollment_service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentStatusResponse:
    enrollment = await enrollment_service.get_status(user.user_id, course_id)
    if enrollment is None:
        return EnrollmentStatusResponse(enrolled=False)
    return EnrollmentStatusResponse(
        enrolled=True,
        enrollment=EnrollmentResponse.model_validate(enrollment),
    )


@router.get(
    "/courses/{course_id}",
    response_model=list[EnrollmentResponse],
    summary="List course enrollments",
)
async def list_course_enrollments(
    course_id: int,
    enrollment_service: EnrollmentServiceDep,
    user: AuthorUser,
) -> list[EnrollmentResponse]:
    """Enrollments of a course (course owner or admin only)."""
    try:
        enrollments = await enrollment_service.list_for_course(course_id, user)
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return [EnrollmentResponse.model_validate(e) for e in enrollments]
