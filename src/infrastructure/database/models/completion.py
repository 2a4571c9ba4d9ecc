# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion, academic block and audit log models."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    created_at_column,
    id_column,
    institution_column,
    status_column,
)
from src.models.enums import CompletionStatus

SINGLE_COMPLETION_INDEX = "uq_course_completions_single_completed"


class CourseCompletion(Base):
    """Terminal record certifying a student finished a course or class.

    program_key is "course:<id>" or "class:<id>" so that one non-null column
    identifies the program; the partial unique index on it allows at most one
    COMPLETED row per (institution, student, program).
    """

    __tablename__ = "course_completions"
    __table_args__ = (
        Index(
            SINGLE_COMPLETION_INDEX,
            "institution_id",
            "student_id",
            "program_key",
            unique=True,
            postgresql_where=text("status = 'COMPLETED'"),
            sqlite_where=text("status = 'COMPLETED'"),
        ),
    )

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    student_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    course_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    class_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    program_key: Mapped[str] = mapped_column(String(60), nullable=False)
    status: Mapped[str] = status_column(CompletionStatus.IN_PROGRESS.value)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    credit_hours_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attendance_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    overall_average: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = created_at_column()


class AcademicBlock(Base):
    """Financial, disciplinary or administrative hold on a student.

    Rows without subject_id or academic_year_id apply to every subject or year.
    """

    __tablename__ = "academic_blocks"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    student_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    block_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    subject_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    academic_year_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = created_at_column()


class AuditLog(Base):
    """Append-only trail of privileged period transitions."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    actor_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    before: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    after: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    note: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = created_at_column()
