# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade write schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.enums import TermType


class GradeCreateRequest(BaseModel):
    """Request to record one grade on the 0-20 scale."""

    student_id: UUID
    subject_id: UUID
    academic_year_id: UUID
    period_type: TermType
    period_number: int = Field(..., ge=1, le=3)
    value: float = Field(..., ge=0, le=20)


class GradeResponse(BaseModel):
    id: UUID
    student_id: UUID
    subject_id: UUID
    academic_year_id: UUID
    period_type: TermType
    period_number: int
    value: float
    recorded_by: UUID | None = None
    recorded_at: datetime
