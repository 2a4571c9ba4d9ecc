# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion eligibility engine.

Evaluates whether a student may be marked as having completed a course
(higher education) or class (secondary education). Every check runs and
accumulates into one report so the caller gets a complete diagnostic:

1. Active yearly enrollment for the program
2. Academic blocks (gate failures become warnings)
3. Obligatory subject coverage
4. Credit hour coverage
5. Average attendance
6. Closure of the academic years referenced by the consolidated history
7. Institution-type rules
8. valid is True only when no error was recorded

The engine only reads. Persisting a completion is the caller's decision.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import AcademicPolicySettings, get_settings
from src.domains.academic_block import AcademicBlockGate, DatabaseAcademicBlockGate
from src.domains.academic_period import AcademicPeriodStateMachine
from src.domains.completion.records import (
    AcademicRecord,
    AcademicRecordAggregator,
    RecordLine,
)
from src.domains.completion.rules import EvaluationContext, rules_for
from src.domains.tenancy import TenantScope, resolve_academic_type
from src.models.completion import (
    AttendanceChecklist,
    CreditHoursChecklist,
    EligibilityChecklist,
    EligibilityReport,
    ObligatorySubjectsChecklist,
)
from src.models.enums import AcademicType, AcademicYearStatus

logger = logging.getLogger(__name__)

NO_ACTIVE_ENROLLMENT = "No valid active yearly enrollment found for this student"
BLOCK_CHECK_FAILED = "Could not verify academic blocks. Verify manually."
YEARS_NOT_CLOSED = "All related academic years must be closed"
NO_CONSOLIDATED_HISTORY = (
    "Consolidated academic history not found; "
    "closing the academic year before completion is recommended"
)


class CompletionEligibilityEngine:
    """Read-only completion eligibility evaluation.

    Attributes:
        db: Async database session.
        block_gate: Academic block collaborator.
        policy: Academic policy thresholds.
        periods: Period state machine used for closure progress.
        aggregator: Loader of enrollment, requirements and record lines.
    """

    def __init__(
        self,
        db: AsyncSession,
        block_gate: AcademicBlockGate | None = None,
        policy: AcademicPolicySettings | None = None,
        periods: AcademicPeriodStateMachine | None = None,
        aggregator: AcademicRecordAggregator | None = None,
    ) -> None:
        self.db = db
        self.policy = policy or get_settings().academic
        self.block_gate = block_gate or DatabaseAcademicBlockGate(db)
        self.periods = periods or AcademicPeriodStateMachine(db)
        self.aggregator = aggregator or AcademicRecordAggregator(db, self.policy)

    async def evaluate(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None = None,
        class_id: str | None = None,
        academic_type: AcademicType | str | None = None,
    ) -> EligibilityReport:
        """Evaluate completion eligibility of a student.

        Args:
            scope: Resolved tenant scope.
            student_id: Student to evaluate.
            course_id: Course id (higher education).
            class_id: Class id (secondary education).
            academic_type: Institution type from a trusted caller. The
                session value in the scope takes precedence.

        Returns:
            EligibilityReport. A negative verdict is a report, not an error.

        Raises:
            ValidationError: If the identifiers do not fit the institution type.
            NotFoundError: If the institution or the course does not exist.
        """
        resolved_type = await resolve_academic_type(self.db, scope, academic_type)
        rules = rules_for(resolved_type)
        rules.validate_identifiers(
            str(course_id) if course_id else None,
            str(class_id) if class_id else None,
        )
        filter_course, filter_class = rules.enrollment_filter(course_id, class_id)

        errors: list[str] = []
        warnings: list[str] = []

        enrollment = await self.aggregator.find_active_enrollment(
            scope, str(student_id), filter_course, filter_class
        )
        if enrollment is None:
            errors.append(NO_ACTIVE_ENROLLMENT)
        else:
            message = rules.check_enrollment(enrollment)
            if message:
                errors.append(message)

        await self._check_blocks(
            scope,
            str(student_id),
            resolved_type,
            enrollment.academic_year_id if enrollment is not None else None,
            errors,
            warnings,
        )

        program = await rules.load_program(self.aggregator, scope, filter_course, filter_class)
        record = await self.aggregator.load_record(
            scope, str(student_id), filter_course, filter_class
        )
        passed = _passed_by_subject(record.lines)

        pending = [s for s in program.obligatory_subjects if s.id not in passed]
        if pending:
            errors.append(
                f"Missing {len(pending)} obligatory subject(s): "
                f"{', '.join(s.name for s in pending)}"
            )

        credit_hours = self._credit_hours(program.required_credit_hours, passed, errors)
        attendance = self._attendance(record.lines, errors)
        year_closed = await self._year_closure(scope, record, errors, warnings)

        ctx = EvaluationContext(
            scope=scope,
            student_id=str(student_id),
            program=program,
            enrollment=enrollment,
            pending=pending,
            errors=errors,
            warnings=warnings,
        )
        await rules.apply(ctx, self.periods)

        report = EligibilityReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            checklist=EligibilityChecklist(
                obligatory_subjects=ObligatorySubjectsChecklist(
                    total=len(program.obligatory_subjects),
                    completed=len(program.obligatory_subjects) - len(pending),
                    pending=[s.name for s in pending],
                ),
                credit_hours=credit_hours,
                attendance=attendance,
                year_closed=year_closed,
                overall_average=_overall_average(record.lines),
            ),
        )

        logger.info(
            "Eligibility of student %s for %s in institution %s: valid=%s errors=%d warnings=%d",
            student_id,
            rules.program_key(course_id, class_id),
            scope.institution_id,
            report.valid,
            len(errors),
            len(warnings),
        )
        return report

    async def _check_blocks(
        self,
        scope: TenantScope,
        student_id: str,
        academic_type: AcademicType,
        academic_year_id: str | None,
        errors: list[str],
        warnings: list[str],
    ) -> None:
        try:
            # A failed gate query must not abort the evaluation's transaction
            async with self.db.begin_nested():
                decision = await self.block_gate.check(
                    student_id,
                    scope.institution_id,
                    academic_type,
                    academic_year_id=academic_year_id,
                )
        except Exception as e:
            logger.warning(
                "Academic block check failed for student %s in institution %s: %s",
                student_id,
                scope.institution_id,
                str(e),
            )
            warnings.append(BLOCK_CHECK_FAILED)
            return

        if decision.blocked:
            errors.append(f"Academic block: {decision.reason or 'blocked'}")

    def _credit_hours(
        self,
        required: int,
        passed: dict[str, RecordLine],
        errors: list[str],
    ) -> CreditHoursChecklist:
        completed = sum(line.credit_hours for line in passed.values())
        percentage = (completed / required) * 100 if required > 0 else 0.0

        if percentage < self.policy.minimum_credit_percentage:
            errors.append(
                f"Insufficient credit hours: {completed}h of {required}h ({percentage:.2f}%)"
            )
        return CreditHoursChecklist(required=required, completed=completed, percentage=percentage)

    def _attendance(self, lines: tuple[RecordLine, ...], errors: list[str]) -> AttendanceChecklist:
        values = [line.attendance_percentage for line in lines]
        average = sum(values) / len(values) if values else 0.0
        minimum = self.policy.minimum_attendance
        passed = average >= minimum

        if not passed:
            errors.append(
                f"Insufficient average attendance: {average:.2f}% (minimum {minimum:g}%)"
            )
        return AttendanceChecklist(average=average, minimum=minimum, passed=passed)

    async def _year_closure(
        self,
        scope: TenantScope,
        record: AcademicRecord,
        errors: list[str],
        warnings: list[str],
    ) -> bool:
        year_ids = (
            {line.academic_year_id for line in record.lines if line.academic_year_id}
            if record.consolidated
            else set()
        )
        if not year_ids:
            warnings.append(NO_CONSOLIDATED_HISTORY)
            return False

        statuses = await self.aggregator.year_statuses(scope, year_ids)
        # Years missing from the institution count as not closed
        closed = all(
            statuses.get(year_id) == AcademicYearStatus.CLOSED.value for year_id in year_ids
        )
        if not closed:
            errors.append(YEARS_NOT_CLOSED)
        return closed


def _passed_by_subject(lines: tuple[RecordLine, ...]) -> dict[str, RecordLine]:
    """First passed line of each subject."""
    passed: dict[str, RecordLine] = {}
    for line in lines:
        if line.passed and line.subject_id not in passed:
            passed[line.subject_id] = line
    return passed


def _overall_average(lines: tuple[RecordLine, ...]) -> float | None:
    averages = [line.final_average for line in lines if line.final_average > 0]
    if not averages:
        return None
    return sum(averages) / len(averages)
