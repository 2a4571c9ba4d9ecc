# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    academic_years: Academic year lifecycle endpoints.
    terms: Semester and trimester endpoints.
    grading_windows: Grading window endpoints and grade entry check.
    closures: Academic closure endpoints.
    grades: Grade entry endpoints.
    completions: Completion eligibility and completion records.
"""

from fastapi import APIRouter

from src.api.v1 import academic_years, closures, completions, grades, grading_windows, terms

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(academic_years.router, prefix="/academic-years", tags=["Academic Years"])
router.include_router(terms.router, prefix="/terms", tags=["Terms"])
router.include_router(grading_windows.router, prefix="/grading-windows", tags=["Grading Windows"])
router.include_router(closures.router, prefix="/closures", tags=["Closures"])
router.include_router(grades.router, prefix="/grades", tags=["Grades"])
router.include_router(completions.router, prefix="/completions", tags=["Completions"])

__all__ = ["router"]
