# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment, grade and academic history models."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    created_at_column,
    id_column,
    institution_column,
    status_column,
)
from src.models.enums import EnrollmentStatus
from src.utils.datetime import utc_now


class YearlyEnrollment(Base):
    """Links a student to a course (higher-ed) or a class (secondary) for one year."""

    __tablename__ = "yearly_enrollments"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    student_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    academic_year_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("courses.id", ondelete="SET NULL")
    )
    class_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("school_classes.id", ondelete="SET NULL")
    )
    status: Mapped[str] = status_column(EnrollmentStatus.ACTIVE.value)
    created_at: Mapped[datetime] = created_at_column()


class SubjectEnrollment(Base):
    """Live, pre-consolidation enrollment of a student in one subject."""

    __tablename__ = "subject_enrollments"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    student_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    subject_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    academic_year_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("academic_years.id", ondelete="SET NULL")
    )
    course_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    class_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    attendance_percentage: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = created_at_column()


class Grade(Base):
    """A single grade (0-20 scale) recorded for a subject and period."""

    __tablename__ = "grades"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    student_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    subject_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    academic_year_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    period_type: Mapped[str] = mapped_column(String(20), nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class AcademicRecordLine(Base):
    """Consolidated, immutable history line for one subject."""

    __tablename__ = "academic_record_lines"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    student_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    academic_year_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("academic_years.id", ondelete="SET NULL")
    )
    course_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    class_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    subject_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    credit_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    outcome: Mapped[str] = mapped_column(String(10), nullable=False)
    attendance_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    final_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    consolidated_at: Mapped[datetime] = created_at_column()
