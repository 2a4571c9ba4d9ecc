# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade write service.

The grading window check and the insert share one transaction: the guard
reads the window row FOR UPDATE, so a concurrent close waits for the
write to commit (or the write waits for the close and is then rejected).
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.domains.academic_period import GradingWindowGuard
from src.domains.academic_period.rules import validate_period
from src.domains.tenancy import TenantScope, resolve_academic_type
from src.infrastructure.database.models import AcademicYear, Grade, Subject
from src.infrastructure.database.models.base import new_id
from src.models.grading import GradeCreateRequest, GradeResponse
from src.models.enums import TermType
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class GradeService:
    """Service for recording grades under the grading window policy.

    Attributes:
        db: Async database session.
        guard: Grading window guard.
    """

    def __init__(self, db: AsyncSession, guard: GradingWindowGuard | None = None) -> None:
        self.db = db
        self.guard = guard or GradingWindowGuard(db)

    async def record_grade(self, scope: TenantScope, request: GradeCreateRequest) -> GradeResponse:
        """Record a grade.

        Args:
            scope: Resolved tenant scope; its actor is stored as recorded_by.
            request: Grade data.

        Returns:
            The recorded grade.

        Raises:
            NotFoundError: If the subject or academic year is not in the institution.
            ValidationError: If the period does not fit the institution type.
            GradingWindowClosedError: If the period does not accept writes.
        """
        subject = await self.db.execute(
            scope.select(Subject).where(Subject.id == str(request.subject_id))
        )
        if subject.scalar_one_or_none() is None:
            raise NotFoundError("Subject not found")

        year = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.id == str(request.academic_year_id))
        )
        if year.scalar_one_or_none() is None:
            raise NotFoundError("Academic year not found")

        academic_type = await resolve_academic_type(self.db, scope)
        validate_period(academic_type, request.period_type, request.period_number)

        await self.guard.ensure_grade_write_allowed(
            scope,
            request.academic_year_id,
            request.period_type,
            request.period_number,
            lock=True,
        )

        grade = Grade(
            id=new_id(),
            institution_id=scope.institution_id,
            student_id=str(request.student_id),
            subject_id=str(request.subject_id),
            academic_year_id=str(request.academic_year_id),
            period_type=TermType(request.period_type).value,
            period_number=request.period_number,
            value=request.value,
            recorded_by=scope.actor_id,
            recorded_at=utc_now(),
        )
        self.db.add(grade)
        await self.db.commit()
        await self.db.refresh(grade)

        logger.info(
            "Recorded grade %s for student %s (subject %s, %s %s) in institution %s",
            grade.id,
            grade.student_id,
            grade.subject_id,
            grade.period_type,
            grade.period_number,
            scope.institution_id,
        )
        return GradeResponse(
            id=grade.id,
            student_id=grade.student_id,
            subject_id=grade.subject_id,
            academic_year_id=grade.academic_year_id,
            period_type=TermType(grade.period_type),
            period_number=grade.period_number,
            value=grade.value,
            recorded_by=grade.recorded_by,
            recorded_at=grade.recorded_at,
        )
