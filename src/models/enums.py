# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enumerations shared by ORM models, services and API schemas.

Values are stored as plain strings in the database.
"""

from enum import Enum


class AcademicType(str, Enum):
    """Institution variant. Determines term type and completion rules."""

    SUPERIOR = "SUPERIOR"
    SECONDARY = "SECONDARY"


class AcademicYearStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class TermType(str, Enum):
    """Semesters belong to SUPERIOR institutions, trimesters to SECONDARY ones."""

    SEMESTER = "SEMESTER"
    TRIMESTER = "TRIMESTER"


class TermStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class GradingWindowStatus(str, Enum):
    """Stored window states plus the display-only EXPIRED state."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    EXPIRED = "EXPIRED"


class ClosureStatus(str, Enum):
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
    REOPENED = "REOPENED"


class PeriodTag(str, Enum):
    """Period a closure record applies to."""

    TERM_1 = "TERM_1"
    TERM_2 = "TERM_2"
    TERM_3 = "TERM_3"
    SEMESTER_1 = "SEMESTER_1"
    SEMESTER_2 = "SEMESTER_2"
    FULL_YEAR = "FULL_YEAR"


class EnrollmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class RecordOutcome(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


class CompletionStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class BlockType(str, Enum):
    FINANCIAL = "FINANCIAL"
    DISCIPLINARY = "DISCIPLINARY"
    ADMINISTRATIVE = "ADMINISTRATIVE"


class GradingWindowPolicy(str, Enum):
    """Decision applied when a period has neither a window nor a closure record."""

    PERMISSIVE = "PERMISSIVE"
    RESTRICTIVE = "RESTRICTIVE"
