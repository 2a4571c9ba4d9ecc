# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion domain package.

This package provides:
- AcademicRecordAggregator: enrollment, requirements and record lines
- CompletionEligibilityEngine: read-only eligibility evaluation
- CourseCompletionService: eligibility-gated completion records
"""

from src.domains.completion.engine import CompletionEligibilityEngine
from src.domains.completion.records import (
    AcademicRecord,
    AcademicRecordAggregator,
    ProgramRequirements,
    RecordLine,
    SubjectRef,
)
from src.domains.completion.rules import (
    CompletionRules,
    SecondaryRules,
    SuperiorRules,
    rules_for,
)
from src.domains.completion.service import CourseCompletionService, EligibilityNotMetError

__all__ = [
    "AcademicRecord",
    "AcademicRecordAggregator",
    "CompletionEligibilityEngine",
    "CompletionRules",
    "CourseCompletionService",
    "EligibilityNotMetError",
    "ProgramRequirements",
    "RecordLine",
    "SecondaryRules",
    "SubjectRef",
    "SuperiorRules",
    "rules_for",
]
