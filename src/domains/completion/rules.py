# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution-type completion rules.

Each institution type gets one rules object, selected once per evaluation.
All variants implement the same contract, so adding an institution type
means adding a class and registering it in RULES_BY_TYPE.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from src.core.exceptions import ValidationError
from src.domains.academic_period import AcademicPeriodStateMachine
from src.domains.completion.records import (
    AcademicRecordAggregator,
    ProgramRequirements,
    SubjectRef,
)
from src.domains.tenancy import TenantScope
from src.infrastructure.database.models import YearlyEnrollment
from src.models.enums import AcademicType, TermType

logger = logging.getLogger(__name__)


@dataclass
class EvaluationContext:
    """State shared between the engine and the rules during one evaluation."""

    scope: TenantScope
    student_id: str
    program: ProgramRequirements
    enrollment: YearlyEnrollment | None
    pending: list[SubjectRef]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class CompletionRules(ABC):
    """Contract implemented by every institution type."""

    academic_type: AcademicType
    missing_obligatory_message: str
    enrollment_missing_program_message: str

    @abstractmethod
    def validate_identifiers(self, course_id: str | None, class_id: str | None) -> None:
        """Raise ValidationError unless the identifiers fit the institution type."""

    @abstractmethod
    def enrollment_filter(
        self, course_id: str | None, class_id: str | None
    ) -> tuple[str | None, str | None]:
        """(course_id, class_id) used to match enrollment and record rows."""

    @abstractmethod
    def program_key(self, course_id: str | None, class_id: str | None) -> str:
        """Stable key of the program a completion is recorded for."""

    @abstractmethod
    def enrollment_has_program(self, enrollment: YearlyEnrollment) -> bool:
        """Whether the enrollment carries the identifier this type requires."""

    @abstractmethod
    async def load_program(
        self,
        aggregator: AcademicRecordAggregator,
        scope: TenantScope,
        course_id: str | None,
        class_id: str | None,
    ) -> ProgramRequirements:
        """Load the requirements of the course or class."""

    @abstractmethod
    async def apply(self, ctx: EvaluationContext, periods: AcademicPeriodStateMachine) -> None:
        """Add the type-specific errors and warnings to the context."""

    def check_enrollment(self, enrollment: YearlyEnrollment) -> str | None:
        if not self.enrollment_has_program(enrollment):
            return self.enrollment_missing_program_message
        return None


class SuperiorRules(CompletionRules):
    """Higher education: courses, semesters, curriculum linkage."""

    academic_type = AcademicType.SUPERIOR
    missing_obligatory_message = "Student does not meet all curriculum requirements."
    enrollment_missing_program_message = "Yearly enrollment has no linked course"

    def validate_identifiers(self, course_id: str | None, class_id: str | None) -> None:
        if not course_id and not class_id:
            raise ValidationError("Either course_id or class_id must be provided")
        if class_id:
            raise ValidationError("class_id is not valid for higher-education institutions")
        if not course_id:
            raise ValidationError("course_id is required for higher-education institutions")

    def enrollment_filter(
        self, course_id: str | None, class_id: str | None
    ) -> tuple[str | None, str | None]:
        return str(course_id), None

    def program_key(self, course_id: str | None, class_id: str | None) -> str:
        return f"course:{course_id}"

    def enrollment_has_program(self, enrollment: YearlyEnrollment) -> bool:
        return bool(enrollment.course_id)

    async def load_program(
        self,
        aggregator: AcademicRecordAggregator,
        scope: TenantScope,
        course_id: str | None,
        class_id: str | None,
    ) -> ProgramRequirements:
        return await aggregator.load_course_requirements(scope, str(course_id))

    async def apply(self, ctx: EvaluationContext, periods: AcademicPeriodStateMachine) -> None:
        if ctx.enrollment is not None:
            closed, total = await periods.term_closure_progress(
                ctx.scope, ctx.enrollment.academic_year_id, TermType.SEMESTER
            )
            if total == 0:
                ctx.warnings.append("No semesters configured for the academic year")
            elif closed < total:
                ctx.errors.append(
                    f"Not all semesters have been closed: {closed} of {total} semesters closed"
                )

        if ctx.pending:
            ctx.errors.append(self.missing_obligatory_message)


class SecondaryRules(CompletionRules):
    """Secondary education: classes, trimesters, institution-wide subjects.

    A course id may accompany the class as a soft cross-reference; it is
    never used for matching.
    """

    academic_type = AcademicType.SECONDARY
    missing_obligatory_message = "Student did not complete all obligatory classes."
    enrollment_missing_program_message = "Yearly enrollment has no linked class"

    def validate_identifiers(self, course_id: str | None, class_id: str | None) -> None:
        if not course_id and not class_id:
            raise ValidationError("Either course_id or class_id must be provided")
        if not class_id:
            raise ValidationError("class_id is required for secondary-education institutions")

    def enrollment_filter(
        self, course_id: str | None, class_id: str | None
    ) -> tuple[str | None, str | None]:
        return None, str(class_id)

    def program_key(self, course_id: str | None, class_id: str | None) -> str:
        return f"class:{class_id}"

    def enrollment_has_program(self, enrollment: YearlyEnrollment) -> bool:
        return bool(enrollment.class_id)

    async def load_program(
        self,
        aggregator: AcademicRecordAggregator,
        scope: TenantScope,
        course_id: str | None,
        class_id: str | None,
    ) -> ProgramRequirements:
        return await aggregator.load_class_requirements(scope, str(class_id))

    async def apply(self, ctx: EvaluationContext, periods: AcademicPeriodStateMachine) -> None:
        if not ctx.program.exists:
            ctx.errors.append("Class not found or does not belong to the institution")

        if ctx.pending:
            ctx.errors.append(self.missing_obligatory_message)


RULES_BY_TYPE: dict[AcademicType, CompletionRules] = {
    AcademicType.SUPERIOR: SuperiorRules(),
    AcademicType.SECONDARY: SecondaryRules(),
}


def rules_for(academic_type: AcademicType | str) -> CompletionRules:
    """Rules object of an institution type.

    Raises:
        ValidationError: If the academic type has no registered rules.
    """
    try:
        return RULES_BY_TYPE[AcademicType(academic_type)]
    except (KeyError, ValueError):
        raise ValidationError(f"Unsupported academic type: {academic_type}")
