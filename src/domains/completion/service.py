# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion service.

Records completions behind the eligibility engine. Concurrent completion
requests for the same student and program are resolved by the partial
unique index on course_completions: the loser of the race gets the
winner's row back with created=False.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AcademicCoreError, ConflictError
from src.domains.audit import AuditService
from src.domains.completion.engine import CompletionEligibilityEngine
from src.domains.completion.rules import CompletionRules, rules_for
from src.domains.tenancy import TenantScope, resolve_academic_type
from src.infrastructure.database.models import CourseCompletion
from src.infrastructure.database.models.base import new_id
from src.models.completion import (
    CompletionRecordResponse,
    CompletionStatusResponse,
    CourseCompletionResponse,
    EligibilityReport,
)
from src.models.enums import CompletionStatus
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EligibilityNotMetError(AcademicCoreError):
    """Raised when a completion is requested for an ineligible student.

    Attributes:
        report: The negative eligibility report.
    """

    def __init__(self, report: EligibilityReport) -> None:
        self.report = report
        super().__init__(
            "Student is not eligible for completion",
            {"report": report.model_dump(mode="json")},
        )


class CourseCompletionService:
    """Service for completion eligibility and completion records.

    Attributes:
        db: Async database session.
        engine: Eligibility engine.
        audit: Audit trail writer.
    """

    def __init__(
        self,
        db: AsyncSession,
        engine: CompletionEligibilityEngine | None = None,
        audit: AuditService | None = None,
    ) -> None:
        self.db = db
        self.engine = engine or CompletionEligibilityEngine(db)
        self.audit = audit or AuditService(db)

    async def evaluate(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> EligibilityReport:
        """Evaluate eligibility without writing anything."""
        return await self.engine.evaluate(scope, str(student_id), _str(course_id), _str(class_id))

    async def record_completion(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None = None,
        class_id: str | None = None,
        notes: str | None = None,
    ) -> CompletionRecordResponse:
        """Record a completion after a positive eligibility evaluation.

        Args:
            scope: Resolved tenant scope; its actor is stored as completed_by.
            student_id: Student completing the program.
            course_id: Course id (higher education).
            class_id: Class id (secondary education).
            notes: Optional notes stored with the completion.

        Returns:
            CompletionRecordResponse. created is False when a COMPLETED row
            already existed or was written concurrently.

        Raises:
            ValidationError: If the identifiers do not fit the institution type.
            EligibilityNotMetError: If the evaluation is negative.
        """
        student_id, course_id, class_id = str(student_id), _str(course_id), _str(class_id)
        rules = await self._rules(scope)
        rules.validate_identifiers(course_id, class_id)
        program_key = rules.program_key(course_id, class_id)

        existing = await self._find_completed(scope, student_id, program_key)
        if existing is not None:
            logger.info("Student %s already completed %s", student_id, program_key)
            return CompletionRecordResponse(created=False, completion=self._to_response(existing))

        report = await self.engine.evaluate(
            scope, student_id, course_id, class_id, rules.academic_type
        )
        if not report.valid:
            raise EligibilityNotMetError(report)

        checklist = report.checklist
        completion = CourseCompletion(
            id=new_id(),
            institution_id=scope.institution_id,
            student_id=student_id,
            course_id=course_id,
            class_id=class_id,
            program_key=program_key,
            status=CompletionStatus.COMPLETED.value,
            completed_at=utc_now(),
            completed_by=scope.actor_id,
            credit_hours_total=checklist.credit_hours.completed,
            attendance_average=checklist.attendance.average,
            overall_average=checklist.overall_average,
            notes=notes,
        )
        self.db.add(completion)
        self.audit.record(
            scope,
            "course_completion.create",
            "course_completion",
            completion.id,
            after={"student_id": student_id, "program_key": program_key},
            note=notes,
        )

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            winner = await self._find_completed(scope, student_id, program_key)
            if winner is None:
                raise ConflictError("Completion could not be recorded")
            logger.info(
                "Concurrent completion for student %s on %s; returning existing record",
                student_id,
                program_key,
            )
            return CompletionRecordResponse(
                created=False, completion=self._to_response(winner), report=report
            )

        await self.db.refresh(completion)
        logger.info(
            "Recorded completion %s for student %s on %s in institution %s",
            completion.id,
            student_id,
            program_key,
            scope.institution_id,
        )
        return CompletionRecordResponse(
            created=True, completion=self._to_response(completion), report=report
        )

    async def get_completion_status(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> CompletionStatusResponse:
        """Whether the student has a COMPLETED record for the program."""
        course_id, class_id = _str(course_id), _str(class_id)
        rules = await self._rules(scope)
        rules.validate_identifiers(course_id, class_id)

        completion = await self._find_completed(
            scope, str(student_id), rules.program_key(course_id, class_id)
        )
        if completion is None:
            return CompletionStatusResponse(completed=False)
        return CompletionStatusResponse(completed=True, completion=self._to_response(completion))

    async def _rules(self, scope: TenantScope) -> CompletionRules:
        return rules_for(await resolve_academic_type(self.db, scope))

    async def _find_completed(
        self, scope: TenantScope, student_id: str, program_key: str
    ) -> CourseCompletion | None:
        result = await self.db.execute(
            scope.select(CourseCompletion).where(
                CourseCompletion.student_id == student_id,
                CourseCompletion.program_key == program_key,
                CourseCompletion.status == CompletionStatus.COMPLETED.value,
            )
        )
        return result.scalar_one_or_none()

    def _to_response(self, completion: CourseCompletion) -> CourseCompletionResponse:
        return CourseCompletionResponse(
            id=completion.id,
            student_id=completion.student_id,
            course_id=completion.course_id,
            class_id=completion.class_id,
            status=CompletionStatus(completion.status),
            completed_at=completion.completed_at,
            completed_by=completion.completed_by,
            credit_hours_total=completion.credit_hours_total or 0,
            attendance_average=completion.attendance_average or 0.0,
            overall_average=completion.overall_average,
            notes=completion.notes,
        )


def _str(value: object | None) -> str | None:
    return str(value) if value else None
