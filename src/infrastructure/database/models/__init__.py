# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Every model except Institution carries a non-null institution_id.
"""

from src.infrastructure.database.models.base import Base
from src.infrastructure.database.models.completion import (
    AcademicBlock,
    AuditLog,
    CourseCompletion,
)
from src.infrastructure.database.models.curriculum import (
    Course,
    CourseSubject,
    SchoolClass,
    Subject,
)
from src.infrastructure.database.models.enrollment import (
    AcademicRecordLine,
    Grade,
    SubjectEnrollment,
    YearlyEnrollment,
)
from src.infrastructure.database.models.institution import Institution
from src.infrastructure.database.models.period import (
    AcademicYear,
    ClosureRecord,
    GradingWindow,
    Term,
)

__all__ = [
    "Base",
    "Institution",
    # Periods
    "AcademicYear",
    "Term",
    "GradingWindow",
    "ClosureRecord",
    # Reference data
    "Course",
    "SchoolClass",
    "Subject",
    "CourseSubject",
    # Enrollment and records
    "YearlyEnrollment",
    "SubjectEnrollment",
    "Grade",
    "AcademicRecordLine",
    # Completion
    "CourseCompletion",
    "AcademicBlock",
    "AuditLog",
]
