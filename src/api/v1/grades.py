# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade entry API endpoints.

- POST / - Record a grade, subject to the grading window policy (423 when closed)
"""

import logging

from fastapi import APIRouter, status

from src.api.dependencies import AuthenticatedUser, Grades, Scope
from src.api.v1.errors import to_http_exception
from src.core.exceptions import AcademicCoreError
from src.models.grading import GradeCreateRequest, GradeResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=GradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record grade",
)
async def record_grade(
    data: GradeCreateRequest,
    current_user: AuthenticatedUser,
    scope: Scope,
    service: Grades,
) -> GradeResponse:
    """Record a grade.

    Raises:
        HTTPException: 423 if grade entry is closed for the period.
    """
    try:
        return await service.record_grade(scope, data)
    except AcademicCoreError as e:
        raise to_http_exception(e)
