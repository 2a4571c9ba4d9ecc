# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic period models: years, terms, grading windows and closure records."""

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    created_at_column,
    id_column,
    institution_column,
    status_column,
)
from src.models.enums import AcademicYearStatus, ClosureStatus, GradingWindowStatus, TermStatus


class AcademicYear(Base):
    """Academic year of one institution.

    At most one ACTIVE year per institution, enforced by a partial unique
    index in addition to the service-level check.
    """

    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("institution_id", "year_number", name="uq_academic_years_institution_year"),
        Index(
            "uq_academic_years_single_active",
            "institution_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    year_number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = status_column(AcademicYearStatus.PLANNED.value)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    activated_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    created_at: Mapped[datetime] = created_at_column()


class Term(Base):
    """Semester or trimester of an academic year."""

    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint(
            "institution_id",
            "academic_year_id",
            "term_type",
            "number",
            name="uq_terms_institution_year_type_number",
        ),
    )

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    academic_year_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    term_type: Mapped[str] = mapped_column(String(20), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = status_column(TermStatus.PLANNED.value)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    created_at: Mapped[datetime] = created_at_column()


class GradingWindow(Base):
    """Time range during which grades may be written for one period."""

    __tablename__ = "grading_windows"
    __table_args__ = (
        UniqueConstraint(
            "institution_id",
            "academic_year_id",
            "period_type",
            "period_number",
            name="uq_grading_windows_institution_year_period",
        ),
    )

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    academic_year_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_type: Mapped[str] = mapped_column(String(20), nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = status_column(GradingWindowStatus.OPEN.value)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reopened_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    reopen_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = created_at_column()


class ClosureRecord(Base):
    """Formal "books closed" marker for a term or a whole year."""

    __tablename__ = "closure_records"
    __table_args__ = (
        UniqueConstraint(
            "institution_id",
            "academic_year",
            "period_tag",
            name="uq_closure_records_institution_year_tag",
        ),
    )

    id: Mapped[str] = id_column()
    institution_id: Mapped[str] = institution_column()
    academic_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_tag: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = status_column(ClosureStatus.OPEN.value)
    closing_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closing_started_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    closure_notes: Mapped[str | None] = mapped_column(Text)
    reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reopened_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False))
    reopen_justification: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = created_at_column()
