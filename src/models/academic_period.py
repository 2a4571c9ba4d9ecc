# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response schemas for academic period operations."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from src.models.enums import (
    AcademicYearStatus,
    ClosureStatus,
    GradingWindowStatus,
    PeriodTag,
    TermStatus,
    TermType,
)


class AcademicYearCreateRequest(BaseModel):
    """Request to create a PLANNED academic year."""

    year_number: int = Field(..., ge=1900, le=2200)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_dates(self) -> "AcademicYearCreateRequest":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AcademicYearResponse(BaseModel):
    id: UUID
    year_number: int
    start_date: date
    end_date: date
    status: AcademicYearStatus
    activated_at: datetime | None = None
    activated_by: UUID | None = None
    closed_at: datetime | None = None
    closed_by: UUID | None = None


class AcademicYearListResponse(BaseModel):
    items: list[AcademicYearResponse]
    total: int


class TermCreateRequest(BaseModel):
    """Request to create a semester or trimester inside an academic year."""

    academic_year_id: UUID
    term_type: TermType
    number: int = Field(..., ge=1, le=3)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_dates(self) -> "TermCreateRequest":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class TermResponse(BaseModel):
    id: UUID
    academic_year_id: UUID
    term_type: TermType
    number: int
    start_date: date
    end_date: date
    status: TermStatus
    closed_at: datetime | None = None


class GradingWindowCreateRequest(BaseModel):
    """Request to open a grading window for one period."""

    academic_year_id: UUID
    period_type: TermType
    period_number: int = Field(..., ge=1, le=3)
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def check_dates(self) -> "GradingWindowCreateRequest":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class GradingWindowReopenRequest(BaseModel):
    """Request to reopen a CLOSED grading window."""

    reason: str | None = Field(default=None, max_length=1000)
    new_end_date: datetime | None = None


class GradingWindowResponse(BaseModel):
    """Grading window with its stored and effective status.

    effective_status is EXPIRED for an OPEN window whose end date has passed.
    """

    id: UUID
    academic_year_id: UUID
    period_type: TermType
    period_number: int
    start_date: datetime
    end_date: datetime
    status: GradingWindowStatus
    effective_status: GradingWindowStatus
    closed_at: datetime | None = None
    closed_by: UUID | None = None
    reopened_at: datetime | None = None
    reopened_by: UUID | None = None
    reopen_reason: str | None = None


class GradingWindowCheckResponse(BaseModel):
    academic_year_id: UUID
    period_type: TermType
    period_number: int
    open: bool


class ClosureTransitionRequest(BaseModel):
    """Request to begin or finish closing a period."""

    academic_year: int = Field(..., ge=1900, le=2200)
    period_tag: PeriodTag
    notes: str | None = Field(default=None, max_length=2000)


class ClosureReopenRequest(BaseModel):
    """Request to reopen a CLOSED period. A justification is mandatory."""

    academic_year: int = Field(..., ge=1900, le=2200)
    period_tag: PeriodTag
    justification: str = Field(..., min_length=1, max_length=2000)

    @field_validator("justification")
    @classmethod
    def justification_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("justification must not be blank")
        return value


class ClosureRecordResponse(BaseModel):
    id: UUID
    academic_year: int
    period_tag: PeriodTag
    status: ClosureStatus
    closing_started_at: datetime | None = None
    closing_started_by: UUID | None = None
    closed_at: datetime | None = None
    closed_by: UUID | None = None
    closure_notes: str | None = None
    reopened_at: datetime | None = None
    reopened_by: UUID | None = None
    reopen_justification: str | None = None
