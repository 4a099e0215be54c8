"""Enrollment table model.

Status transitions::

    (none) --enroll--> active --unenroll--> dropped
                         |
                         +--all lessons complete--> completed

``completed`` and ``dropped`` are terminal for a row. Re-enrolling after a
drop inserts a new row, so the table keeps the full history. The partial
unique index allows at most one non-dropped row per (user, course).
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.core.database import Base, UTCDateTime, utc_now


class EnrollmentStatus(str, Enum):
    """Enrollment status values."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


# Statuses that count as "enrolled" for progress tracking
ENROLLED_STATUSES = (EnrollmentStatus.ACTIVE.value, EnrollmentStatus.COMPLETED.value)

_NOT_DROPPED = text("status != 'dropped'")


class Enrollment(Base):
    """A student's enrollment in a course."""

    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollments_current",
            "user_id",
            "course_id",
            unique=True,
            sqlite_where=_NOT_DROPPED,
            postgresql_where=_NOT_DROPPED,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=EnrollmentStatus.ACTIVE.value
    )
    enrolled_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE.value
