"""Course and lesson table models.

Lessons of a course are ordered by ``order_number`` (ties broken by ``id``).
Order numbers are assigned on insert as one past the current maximum and are
never reused or compacted, so gaps after deletes are normal. The column is
deliberately not unique: a reorder batch may pass through transient
duplicates before it commits.
"""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.core.database import Base, UTCDateTime, utc_now


class Course(Base):
    """A course authored by one teacher.

    Unpublished courses are invisible to enrollment.
    """

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    thumbnail: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )


class Lesson(Base):
    """A lesson inside a course.

    ``video_url`` and ``file_url`` are opaque object-storage keys.
    ``duration`` is in minutes.
    """

    __tablename__ = "lessons"
    __table_args__ = (Index("ix_lessons_course_order", "course_id", "order_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text, default="")
    video_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0)
    order_number: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    @property
    def media_paths(self) -> list[str]:
        """Object-storage keys owned by this lesson."""
        return [path for path in (self.video_url, self.file_url) if path]
