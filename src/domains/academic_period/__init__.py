# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic period domain package.

This package provides the academic period lifecycle:
- Academic year activation and closing (one ACTIVE year per institution)
- Terms per institution type (semesters or trimesters)
- Grading windows and the guard consulted before grade writes
- Closure records with audited, justified reopening
"""

from src.domains.academic_period.guard import (
    GradeWindowDecision,
    GradingWindowClosedError,
    GradingWindowGuard,
)
from src.domains.academic_period.service import (
    DEFAULT_REOPEN_REASON,
    AcademicPeriodStateMachine,
    effective_window_status,
)

__all__ = [
    "AcademicPeriodStateMachine",
    "DEFAULT_REOPEN_REASON",
    "effective_window_status",
    "GradingWindowGuard",
    "GradingWindowClosedError",
    "GradeWindowDecision",
]
