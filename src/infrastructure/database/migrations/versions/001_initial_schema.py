# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial academic records schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-10-19

This migration creates all tables based on the SQLAlchemy models in
src/infrastructure/database/models/. Every table except institutions
carries a non-null institution_id.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True)


def _institution() -> sa.Column:
    return sa.Column(
        "institution_id",
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey("institutions.id", ondelete="CASCADE"),
        nullable=False,
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def _uuid(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=False), nullable=nullable)


def _fk(name: str, table: str, ondelete: str, nullable: bool) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(f"{table}.id", ondelete=ondelete),
        nullable=nullable,
    )


def _institution_index(table: str) -> None:
    op.create_index(f"ix_{table}_institution_id", table, ["institution_id"])


def upgrade() -> None:
    """Create academic records tables."""
    # ==========================================================================
    # 1. institutions (tenant root)
    # ==========================================================================
    op.create_table(
        "institutions",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("academic_type", sa.String(20), nullable=False),
        sa.Column("grading_window_policy", sa.String(20), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "academic_type IN ('SUPERIOR', 'SECONDARY')",
            name="ck_institutions_valid_academic_type",
        ),
    )

    # ==========================================================================
    # 2. academic_years
    # ==========================================================================
    op.create_table(
        "academic_years",
        _id(),
        _institution(),
        sa.Column("year_number", sa.Integer, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PLANNED"),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("activated_by"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("closed_by"),
        _created_at(),
        sa.UniqueConstraint(
            "institution_id", "year_number", name="uq_academic_years_institution_year"
        ),
    )
    _institution_index("academic_years")
    op.create_index(
        "uq_academic_years_single_active",
        "academic_years",
        ["institution_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    # ==========================================================================
    # 3. terms
    # ==========================================================================
    op.create_table(
        "terms",
        _id(),
        _institution(),
        _fk("academic_year_id", "academic_years", "CASCADE", nullable=False),
        sa.Column("term_type", sa.String(20), nullable=False),
        sa.Column("number", sa.Integer, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PLANNED"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("closed_by"),
        _created_at(),
        sa.UniqueConstraint(
            "institution_id",
            "academic_year_id",
            "term_type",
            "number",
            name="uq_terms_institution_year_type_number",
        ),
    )
    _institution_index("terms")
    op.create_index("ix_terms_academic_year_id", "terms", ["academic_year_id"])

    # ==========================================================================
    # 4. grading_windows
    # ==========================================================================
    op.create_table(
        "grading_windows",
        _id(),
        _institution(),
        _fk("academic_year_id", "academic_years", "CASCADE", nullable=False),
        sa.Column("period_type", sa.String(20), nullable=False),
        sa.Column("period_number", sa.Integer, nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("closed_by"),
        sa.Column("reopened_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("reopened_by"),
        sa.Column("reopen_reason", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "institution_id",
            "academic_year_id",
            "period_type",
            "period_number",
            name="uq_grading_windows_institution_year_period",
        ),
    )
    _institution_index("grading_windows")
    op.create_index(
        "ix_grading_windows_academic_year_id", "grading_windows", ["academic_year_id"]
    )

    # ==========================================================================
    # 5. closure_records
    # ==========================================================================
    op.create_table(
        "closure_records",
        _id(),
        _institution(),
        sa.Column("academic_year", sa.Integer, nullable=False),
        sa.Column("period_tag", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
        sa.Column("closing_started_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("closing_started_by"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("closed_by"),
        sa.Column("closure_notes", sa.Text, nullable=True),
        sa.Column("reopened_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("reopened_by"),
        sa.Column("reopen_justification", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "institution_id",
            "academic_year",
            "period_tag",
            name="uq_closure_records_institution_year_tag",
        ),
        sa.CheckConstraint(
            "status <> 'REOPENED' OR reopen_justification IS NOT NULL",
            name="ck_closure_records_reopen_justified",
        ),
    )
    _institution_index("closure_records")

    # ==========================================================================
    # 6. courses, school_classes, subjects, course_subjects
    # ==========================================================================
    for table in ("courses", "school_classes"):
        op.create_table(
            table,
            _id(),
            _institution(),
            sa.Column("name", sa.String(200), nullable=False),
            sa.Column("code", sa.String(50), nullable=True),
            sa.Column("required_credit_hours", sa.Integer, nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
            _created_at(),
        )
        _institution_index(table)

    op.create_table(
        "subjects",
        _id(),
        _institution(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("credit_hours", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_obligatory", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )
    _institution_index("subjects")

    op.create_table(
        "course_subjects",
        _id(),
        _institution(),
        _fk("course_id", "courses", "CASCADE", nullable=False),
        _fk("subject_id", "subjects", "CASCADE", nullable=False),
        sa.UniqueConstraint("course_id", "subject_id", name="uq_course_subjects_course_subject"),
    )
    _institution_index("course_subjects")
    op.create_index("ix_course_subjects_course_id", "course_subjects", ["course_id"])

    # ==========================================================================
    # 7. enrollments, grades, academic history
    # ==========================================================================
    op.create_table(
        "yearly_enrollments",
        _id(),
        _institution(),
        _uuid("student_id", nullable=False),
        _fk("academic_year_id", "academic_years", "CASCADE", nullable=False),
        _fk("course_id", "courses", "SET NULL", nullable=True),
        _fk("class_id", "school_classes", "SET NULL", nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        _created_at(),
    )
    _institution_index("yearly_enrollments")
    op.create_index("ix_yearly_enrollments_student_id", "yearly_enrollments", ["student_id"])

    op.create_table(
        "subject_enrollments",
        _id(),
        _institution(),
        _uuid("student_id", nullable=False),
        _fk("subject_id", "subjects", "CASCADE", nullable=False),
        _fk("academic_year_id", "academic_years", "SET NULL", nullable=True),
        _uuid("course_id"),
        _uuid("class_id"),
        sa.Column("attendance_percentage", sa.Float, nullable=True),
        _created_at(),
    )
    _institution_index("subject_enrollments")
    op.create_index("ix_subject_enrollments_student_id", "subject_enrollments", ["student_id"])

    op.create_table(
        "grades",
        _id(),
        _institution(),
        _uuid("student_id", nullable=False),
        _fk("subject_id", "subjects", "CASCADE", nullable=False),
        _fk("academic_year_id", "academic_years", "CASCADE", nullable=False),
        sa.Column("period_type", sa.String(20), nullable=False),
        sa.Column("period_number", sa.Integer, nullable=False),
        sa.Column("value", sa.Float, nullable=False),
        _uuid("recorded_by"),
        _created_at("recorded_at"),
        sa.CheckConstraint("value >= 0 AND value <= 20", name="ck_grades_value_range"),
    )
    _institution_index("grades")
    op.create_index("ix_grades_student_id", "grades", ["student_id"])

    op.create_table(
        "academic_record_lines",
        _id(),
        _institution(),
        _uuid("student_id", nullable=False),
        _fk("academic_year_id", "academic_years", "SET NULL", nullable=True),
        _uuid("course_id"),
        _uuid("class_id"),
        _fk("subject_id", "subjects", "CASCADE", nullable=False),
        sa.Column("credit_hours", sa.Integer, nullable=False, server_default="0"),
        sa.Column("outcome", sa.String(10), nullable=False),
        sa.Column("attendance_percentage", sa.Float, nullable=False, server_default="0"),
        sa.Column("final_average", sa.Float, nullable=False, server_default="0"),
        _created_at("consolidated_at"),
    )
    _institution_index("academic_record_lines")
    op.create_index(
        "ix_academic_record_lines_student_id", "academic_record_lines", ["student_id"]
    )

    # ==========================================================================
    # 8. course_completions, academic_blocks, audit_logs
    # ==========================================================================
    op.create_table(
        "course_completions",
        _id(),
        _institution(),
        _uuid("student_id", nullable=False),
        _uuid("course_id"),
        _uuid("class_id"),
        sa.Column("program_key", sa.String(60), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("completed_by"),
        sa.Column("credit_hours_total", sa.Integer, nullable=False, server_default="0"),
        sa.Column("attendance_average", sa.Float, nullable=False, server_default="0"),
        sa.Column("overall_average", sa.Float, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        _created_at(),
    )
    _institution_index("course_completions")
    op.create_index("ix_course_completions_student_id", "course_completions", ["student_id"])
    op.create_index(
        "uq_course_completions_single_completed",
        "course_completions",
        ["institution_id", "student_id", "program_key"],
        unique=True,
        postgresql_where=sa.text("status = 'COMPLETED'"),
    )

    op.create_table(
        "academic_blocks",
        _id(),
        _institution(),
        _uuid("student_id", nullable=False),
        sa.Column("block_type", sa.String(20), nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        _uuid("subject_id"),
        _uuid("academic_year_id"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
    )
    _institution_index("academic_blocks")
    op.create_index("ix_academic_blocks_student_id", "academic_blocks", ["student_id"])

    op.create_table(
        "audit_logs",
        _id(),
        _institution(),
        _uuid("actor_id"),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("before", postgresql.JSONB, nullable=True),
        sa.Column("after", postgresql.JSONB, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        _created_at(),
    )
    _institution_index("audit_logs")


def downgrade() -> None:
    """Drop academic records tables."""
    for table in (
        "audit_logs",
        "academic_blocks",
        "course_completions",
        "academic_record_lines",
        "grades",
        "subject_enrollments",
        "yearly_enrollments",
        "course_subjects",
        "subjects",
        "school_classes",
        "courses",
        "closure_records",
        "grading_windows",
        "terms",
        "academic_years",
        "institutions",
    ):
        op.drop_table(table)
