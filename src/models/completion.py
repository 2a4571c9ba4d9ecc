# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Eligibility report and course completion schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.enums import CompletionStatus


class ObligatorySubjectsChecklist(BaseModel):
    """Obligatory subject coverage.

    Attributes:
        total: Number of obligatory subjects of the program.
        completed: Number of subjects with a PASS outcome.
        pending: Names of obligatory subjects not yet passed.
    """

    total: int
    completed: int
    pending: list[str] = Field(default_factory=list)


class CreditHoursChecklist(BaseModel):
    required: int
    completed: int
    percentage: float


class AttendanceChecklist(BaseModel):
    average: float
    minimum: float
    passed: bool


class EligibilityChecklist(BaseModel):
    obligatory_subjects: ObligatorySubjectsChecklist
    credit_hours: CreditHoursChecklist
    attendance: AttendanceChecklist
    year_closed: bool
    overall_average: float | None = None


class EligibilityReport(BaseModel):
    """Outcome of a completion eligibility evaluation.

    valid is True only when errors is empty. Warnings never affect it.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    checklist: EligibilityChecklist


class CompletionCreateRequest(BaseModel):
    """Request to record a course or class completion."""

    student_id: UUID
    course_id: UUID | None = None
    class_id: UUID | None = None
    notes: str | None = Field(default=None, max_length=2000)


class CourseCompletionResponse(BaseModel):
    id: UUID
    student_id: UUID
    course_id: UUID | None = None
    class_id: UUID | None = None
    status: CompletionStatus
    completed_at: datetime | None = None
    completed_by: UUID | None = None
    credit_hours_total: int
    attendance_average: float
    overall_average: float | None = None
    notes: str | None = None


class CompletionRecordResponse(BaseModel):
    """Result of a completion write.

    created is False when the student had already completed the program,
    including when a concurrent request won the race.
    """

    created: bool
    completion: CourseCompletionResponse
    report: EligibilityReport | None = None


class CompletionStatusResponse(BaseModel):
    completed: bool
    completion: CourseCompletionResponse | None = None
