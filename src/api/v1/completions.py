# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion API endpoints.

This module provides endpoints for course and class completion:
- GET /eligibility - Eligibility report for a student
- POST / - Record a completion (422 with the report when not eligible)
- GET /status - Whether a student has completed a program

Institution ids are never read from the request; the institution type comes
from the verified session or the institution record.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response, status

from src.api.dependencies import Completions, PeriodAdmin, Scope
from src.api.middleware.rate_limit import RATE_LIMIT_WRITE, limiter
from src.api.v1.errors import to_http_exception
from src.core.exceptions import AcademicCoreError
from src.models.completion import (
    CompletionCreateRequest,
    CompletionRecordResponse,
    CompletionStatusResponse,
    EligibilityReport,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/eligibility",
    response_model=EligibilityReport,
    summary="Evaluate completion eligibility",
    description=(
        "Run every completion check and return the full report. "
        "A negative verdict is a 200 response with valid=false."
    ),
)
async def evaluate_eligibility(
    student_id: Annotated[UUID, Query()],
    scope: Scope,
    service: Completions,
    course_id: Annotated[UUID | None, Query()] = None,
    class_id: Annotated[UUID | None, Query()] = None,
) -> EligibilityReport:
    try:
        return await service.evaluate(scope, student_id, course_id, class_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.post(
    "",
    response_model=CompletionRecordResponse,
    summary="Record completion",
    responses={
        200: {"description": "Student had already completed the program"},
        201: {"description": "Completion recorded"},
        422: {"description": "Student is not eligible; the report is in the detail"},
    },
)
@limiter.limit(RATE_LIMIT_WRITE)
async def record_completion(
    request: Request,
    response: Response,
    data: CompletionCreateRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: Completions,
) -> CompletionRecordResponse:
    """Record a completion after a positive evaluation.

    Returns 201 when a record was created and 200 when the student had
    already completed the program.
    """
    logger.info("Completion requested for student %s by %s", data.student_id, current_user.id)
    try:
        result = await service.record_completion(
            scope, data.student_id, data.course_id, data.class_id, data.notes
        )
    except AcademicCoreError as e:
        raise to_http_exception(e)

    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return result


@router.get(
    "/status",
    response_model=CompletionStatusResponse,
    summary="Get completion status",
)
async def get_completion_status(
    student_id: Annotated[UUID, Query()],
    scope: Scope,
    service: Completions,
    course_id: Annotated[UUID | None, Query()] = None,
    class_id: Annotated[UUID | None, Query()] = None,
) -> CompletionStatusResponse:
    try:
        return await service.get_completion_status(scope, student_id, course_id, class_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)
