# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic record aggregation for completion eligibility.

Loads, always through the caller's TenantScope:
- the student's active yearly enrollment
- the program requirements (course curriculum or institution-wide subjects)
- the academic record, from the consolidated history when it exists and
  otherwise as a live projection over subject enrollments and grades
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.settings import AcademicPolicySettings
from src.core.exceptions import NotFoundError
from src.domains.tenancy import TenantScope, scoped
from src.infrastructure.database.models import (
    AcademicRecordLine,
    AcademicYear,
    Course,
    CourseSubject,
    Grade,
    SchoolClass,
    Subject,
    SubjectEnrollment,
    YearlyEnrollment,
)
from src.models.enums import EnrollmentStatus, RecordOutcome

logger = logging.getLogger(__name__)

# Attendance assumed for live lines without a recorded percentage
LIVE_ATTENDANCE_FALLBACK = 100.0


@dataclass(frozen=True)
class SubjectRef:
    id: str
    name: str


@dataclass(frozen=True)
class ProgramRequirements:
    """What a course or class requires for completion.

    Attributes:
        program_id: Course or class id.
        name: Course or class name; None when the class does not exist.
        required_credit_hours: Credit hours required for completion.
        obligatory_subjects: Obligatory subjects, ordered by name.
        exists: Whether the course or class was found in the institution.
    """

    program_id: str
    name: str | None
    required_credit_hours: int
    obligatory_subjects: tuple[SubjectRef, ...]
    exists: bool = True


@dataclass(frozen=True)
class RecordLine:
    """One subject of the student's academic record."""

    subject_id: str
    subject_name: str
    credit_hours: int
    passed: bool
    attendance_percentage: float
    final_average: float
    academic_year_id: str | None = None


@dataclass(frozen=True)
class AcademicRecord:
    """Academic record lines and whether they come from consolidated history."""

    lines: tuple[RecordLine, ...]
    consolidated: bool


class AcademicRecordAggregator:
    """Read-only loader of enrollment, requirements and record lines.

    Attributes:
        db: Async database session.
        policy: Academic policy settings (passing grade).
    """

    def __init__(self, db: AsyncSession, policy: AcademicPolicySettings | None = None) -> None:
        self.db = db
        self.policy = policy or AcademicPolicySettings()

    async def find_active_enrollment(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> YearlyEnrollment | None:
        """Newest ACTIVE yearly enrollment of the student for the program."""
        query = scope.select(YearlyEnrollment).where(
            YearlyEnrollment.student_id == str(student_id),
            YearlyEnrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        if course_id is not None:
            query = query.where(YearlyEnrollment.course_id == str(course_id))
        if class_id is not None:
            query = query.where(YearlyEnrollment.class_id == str(class_id))
        query = query.order_by(YearlyEnrollment.created_at.desc(), YearlyEnrollment.id)

        result = await self.db.execute(query)
        return result.scalars().first()

    async def load_course_requirements(self, scope: TenantScope, course_id: str) -> ProgramRequirements:
        """Requirements of a course, from its curriculum linkage.

        Raises:
            NotFoundError: If the course does not exist in the institution.
        """
        result = await self.db.execute(scope.select(Course).where(Course.id == str(course_id)))
        course = result.scalar_one_or_none()
        if course is None:
            raise NotFoundError("Course not found")

        query = (
            scope.select(Subject)
            .join(CourseSubject, CourseSubject.subject_id == Subject.id)
            .where(
                CourseSubject.course_id == course.id,
                Subject.is_obligatory.is_(True),
            )
            .order_by(Subject.name, Subject.id)
        )
        subjects = await self.db.execute(scoped(query, CourseSubject, scope))
        return ProgramRequirements(
            program_id=str(course.id),
            name=course.name,
            required_credit_hours=course.required_credit_hours or 0,
            obligatory_subjects=tuple(SubjectRef(str(s.id), s.name) for s in subjects.scalars().all()),
        )

    async def load_class_requirements(self, scope: TenantScope, class_id: str) -> ProgramRequirements:
        """Requirements of a class.

        Classes have no curriculum relation, so their obligatory subjects are
        the institution's active obligatory subjects. A missing class yields
        requirements with exists=False instead of an exception.
        """
        result = await self.db.execute(scope.select(SchoolClass).where(SchoolClass.id == str(class_id)))
        school_class = result.scalar_one_or_none()

        subjects = await self.db.execute(
            scope.select(Subject)
            .where(Subject.is_obligatory.is_(True), Subject.is_active.is_(True))
            .order_by(Subject.name, Subject.id)
        )
        obligatory = tuple(SubjectRef(str(s.id), s.name) for s in subjects.scalars().all())

        if school_class is None:
            return ProgramRequirements(
                program_id=str(class_id),
                name=None,
                required_credit_hours=0,
                obligatory_subjects=obligatory,
                exists=False,
            )
        return ProgramRequirements(
            program_id=str(school_class.id),
            name=school_class.name,
            required_credit_hours=school_class.required_credit_hours or 0,
            obligatory_subjects=obligatory,
        )

    async def load_record(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> AcademicRecord:
        """Academic record of the student for a program.

        Uses the consolidated history when any line exists, the live
        projection otherwise.
        """
        lines = await self._load_consolidated(scope, student_id, course_id, class_id)
        if lines:
            return AcademicRecord(lines=lines, consolidated=True)

        logger.debug("No consolidated history for student %s; using live projection", student_id)
        lines = await self._load_live(scope, student_id, course_id, class_id)
        return AcademicRecord(lines=lines, consolidated=False)

    async def year_statuses(self, scope: TenantScope, year_ids: set[str]) -> dict[str, str]:
        """Map academic year id to status for years found in the institution."""
        if not year_ids:
            return {}
        result = await self.db.execute(
            scope.select(AcademicYear).where(AcademicYear.id.in_(sorted(year_ids)))
        )
        return {str(year.id): year.status for year in result.scalars().all()}

    async def _load_consolidated(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None,
        class_id: str | None,
    ) -> tuple[RecordLine, ...]:
        query = (
            scope.select(AcademicRecordLine, Subject.name)
            .join(Subject, Subject.id == AcademicRecordLine.subject_id)
            .where(AcademicRecordLine.student_id == str(student_id))
        )
        if course_id is not None:
            query = query.where(AcademicRecordLine.course_id == str(course_id))
        if class_id is not None:
            query = query.where(AcademicRecordLine.class_id == str(class_id))
        query = query.order_by(Subject.name, AcademicRecordLine.subject_id, AcademicRecordLine.id)

        result = await self.db.execute(scoped(query, Subject, scope))
        return tuple(
            RecordLine(
                subject_id=str(line.subject_id),
                subject_name=name,
                credit_hours=line.credit_hours or 0,
                passed=line.outcome == RecordOutcome.PASS,
                attendance_percentage=float(line.attendance_percentage or 0.0),
                final_average=float(line.final_average or 0.0),
                academic_year_id=str(line.academic_year_id) if line.academic_year_id else None,
            )
            for line, name in result.all()
        )

    async def _load_live(
        self,
        scope: TenantScope,
        student_id: str,
        course_id: str | None,
        class_id: str | None,
    ) -> tuple[RecordLine, ...]:
        query = (
            scope.select(SubjectEnrollment, Subject)
            .join(Subject, Subject.id == SubjectEnrollment.subject_id)
            .where(SubjectEnrollment.student_id == str(student_id))
        )
        if course_id is not None:
            query = query.where(SubjectEnrollment.course_id == str(course_id))
        if class_id is not None:
            query = query.where(SubjectEnrollment.class_id == str(class_id))
        query = query.order_by(Subject.name, Subject.id, SubjectEnrollment.id)

        result = await self.db.execute(scoped(query, Subject, scope))
        rows = result.all()
        if not rows:
            return ()

        subject_ids = sorted({str(subject.id) for _, subject in rows})
        grades_query = select(Grade.subject_id, Grade.academic_year_id, Grade.value).where(
            Grade.student_id == str(student_id),
            Grade.subject_id.in_(subject_ids),
            Grade.value > 0,
        ).order_by(Grade.subject_id, Grade.id)
        grades_result = await self.db.execute(scoped(grades_query, Grade, scope))
        values: dict[tuple[str, str], list[float]] = defaultdict(list)
        any_year: dict[str, list[float]] = defaultdict(list)
        for subject_id, year_id, value in grades_result.all():
            values[(str(subject_id), str(year_id))].append(float(value))
            any_year[str(subject_id)].append(float(value))

        lines = []
        for enrollment, subject in rows:
            # Only grades of the enrollment's year; retakes do not mix
            if enrollment.academic_year_id:
                subject_values = values.get((str(subject.id), str(enrollment.academic_year_id)), [])
            else:
                subject_values = any_year.get(str(subject.id), [])
            average = sum(subject_values) / len(subject_values) if subject_values else 0.0
            attendance = enrollment.attendance_percentage
            lines.append(
                RecordLine(
                    subject_id=str(subject.id),
                    subject_name=subject.name,
                    credit_hours=subject.credit_hours or 0,
                    passed=average >= self.policy.passing_grade,
                    attendance_percentage=(
                        float(attendance) if attendance is not None else LIVE_ATTENDANCE_FALLBACK
                    ),
                    final_average=average,
                    academic_year_id=(
                        str(enrollment.academic_year_id) if enrollment.academic_year_id else None
                    ),
                )
            )
        return tuple(lines)
