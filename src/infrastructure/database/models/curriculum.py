# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reference data read by the eligibility engine.

Courses (higher education) own a curriculum through course_subjects.
Classes (secondary education) have no direct curriculum relation; their
obligatory subjects are the institution's active obligatory subjects.
"""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    created_at_column,
    id_column,
    institution_column,
)


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50))
    required_credit_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = created_at_column()


class SchoolClass(Base):
    __tablename__ = "school_classes"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50))
    required_credit_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = created_at_column()


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    credit_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_obligatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = created_at_column()


class CourseSubject(Base):
    """Curriculum linkage between a course and its subjects."""

    __tablename__ = "course_subjects"
    __table_args__ = (
        UniqueConstraint("course_id", "subject_id", name="uq_course_subjects_course_subject"),
    )

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    course_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
