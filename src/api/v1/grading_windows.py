# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grading window API endpoints.

This module provides endpoints for grading windows:
- POST / - Create an OPEN window for a period
- GET / - List windows
- GET /active - Window open right now, if any
- GET /check - Whether grade entry is accepted for a period
- POST /{window_id}/close - Close a window
- POST /{window_id}/reopen - Reopen a closed window (audited)
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.api.dependencies import PeriodAdmin, PeriodService, Scope, WindowGuard
from src.api.v1.errors import to_http_exception
from src.core.exceptions import AcademicCoreError
from src.models.academic_period import (
    GradingWindowCheckResponse,
    GradingWindowCreateRequest,
    GradingWindowReopenRequest,
    GradingWindowResponse,
)
from src.models.enums import TermType

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=GradingWindowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create grading window",
    description="Create an OPEN grading window. Requires a period admin role.",
)
async def create_grading_window(
    data: GradingWindowCreateRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> GradingWindowResponse:
    """Create a grading window.

    Raises:
        HTTPException: 409 if a window exists for the period or the dates
            overlap another window of the year.
    """
    logger.info(
        "Creating grading window %s %s (year %s) by %s",
        data.period_type.value,
        data.period_number,
        data.academic_year_id,
        current_user.id,
    )
    try:
        return await service.create_window(scope, data)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=list[GradingWindowResponse],
    summary="List grading windows",
)
async def list_grading_windows(
    scope: Scope,
    service: PeriodService,
    academic_year_id: Annotated[UUID | None, Query(description="Filter by academic year")] = None,
) -> list[GradingWindowResponse]:
    return await service.list_windows(scope, academic_year_id)


@router.get(
    "/active",
    response_model=GradingWindowResponse,
    summary="Get active grading window",
)
async def get_active_grading_window(scope: Scope, service: PeriodService) -> GradingWindowResponse:
    """Get the OPEN window covering the current moment.

    Raises:
        HTTPException: 404 if no window is open now.
    """
    window = await service.get_open_window(scope)
    if window is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No grading window is open",
        )
    return window


@router.get(
    "/check",
    response_model=GradingWindowCheckResponse,
    summary="Check grade entry",
    description="Whether grade entry is accepted for a period right now.",
)
async def check_grading_window(
    academic_year_id: Annotated[UUID, Query()],
    period_type: Annotated[TermType, Query()],
    period_number: Annotated[int, Query(ge=1, le=3)],
    scope: Scope,
    guard: WindowGuard,
) -> GradingWindowCheckResponse:
    try:
        is_open = await guard.is_grade_window_open(
            scope, academic_year_id, period_type, period_number
        )
    except AcademicCoreError as e:
        raise to_http_exception(e)

    return GradingWindowCheckResponse(
        academic_year_id=academic_year_id,
        period_type=period_type,
        period_number=period_number,
        open=is_open,
    )


@router.post(
    "/{window_id}/close",
    response_model=GradingWindowResponse,
    summary="Close grading window",
)
async def close_grading_window(
    window_id: UUID,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> GradingWindowResponse:
    logger.info("Closing grading window %s by %s", window_id, current_user.id)
    try:
        return await service.close_window(scope, window_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.post(
    "/{window_id}/reopen",
    response_model=GradingWindowResponse,
    summary="Reopen grading window",
    description="Reopen a CLOSED window. Actor, time and reason are recorded.",
)
async def reopen_grading_window(
    window_id: UUID,
    data: GradingWindowReopenRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> GradingWindowResponse:
    logger.info("Reopening grading window %s by %s", window_id, current_user.id)
    try:
        return await service.reopen_window(scope, window_id, data)
    except AcademicCoreError as e:
        raise to_http_exception(e)
