# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic year management API endpoints.

This module provides endpoints for academic year management:
- POST / - Create a new academic year (PLANNED)
- GET / - List academic years
- GET /active - Get the ACTIVE academic year
- GET /{year_id} - Get academic year details
- POST /{year_id}/activate - PLANNED -> ACTIVE
- POST /{year_id}/close - ACTIVE -> CLOSED

State changes require a period admin role.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.api.dependencies import PeriodAdmin, PeriodService, Scope
from src.api.v1.errors import to_http_exception
from src.core.exceptions import AcademicCoreError
from src.models.academic_period import (
    AcademicYearCreateRequest,
    AcademicYearListResponse,
    AcademicYearResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=AcademicYearResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create academic year",
    description="Create a PLANNED academic year. Requires a period admin role.",
)
async def create_academic_year(
    data: AcademicYearCreateRequest,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> AcademicYearResponse:
    """Create a new academic year.

    Raises:
        HTTPException: 409 if the year number already exists.
    """
    logger.info(
        "Creating academic year %s (%s to %s) by %s",
        data.year_number,
        data.start_date,
        data.end_date,
        current_user.id,
    )
    try:
        return await service.create_year(scope, data)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.get(
    "",
    response_model=AcademicYearListResponse,
    summary="List academic years",
)
async def list_academic_years(scope: Scope, service: PeriodService) -> AcademicYearListResponse:
    """List the institution's academic years, newest first."""
    items, total = await service.list_years(scope)
    return AcademicYearListResponse(items=items, total=total)


@router.get(
    "/active",
    response_model=AcademicYearResponse,
    summary="Get active academic year",
)
async def get_active_academic_year(scope: Scope, service: PeriodService) -> AcademicYearResponse:
    """Get the ACTIVE academic year.

    Raises:
        HTTPException: 404 if no year is ACTIVE.
    """
    academic_year = await service.get_active_year(scope)
    if academic_year is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active academic year",
        )
    return academic_year


@router.get(
    "/{year_id}",
    response_model=AcademicYearResponse,
    summary="Get academic year",
)
async def get_academic_year(
    year_id: UUID,
    scope: Scope,
    service: PeriodService,
) -> AcademicYearResponse:
    """Get academic year details."""
    try:
        return await service.get_year(scope, year_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.post(
    "/{year_id}/activate",
    response_model=AcademicYearResponse,
    summary="Activate academic year",
    description="Move a PLANNED year to ACTIVE. Only one year may be ACTIVE.",
)
async def activate_academic_year(
    year_id: UUID,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> AcademicYearResponse:
    """Activate an academic year.

    Raises:
        HTTPException: 409 if the year is CLOSED or another year is ACTIVE.
    """
    logger.info("Activating academic year %s by %s", year_id, current_user.id)
    try:
        return await service.activate_year(scope, year_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)


@router.post(
    "/{year_id}/close",
    response_model=AcademicYearResponse,
    summary="Close academic year",
    description="Move an ACTIVE year to CLOSED once all its terms are closed.",
)
async def close_academic_year(
    year_id: UUID,
    current_user: PeriodAdmin,
    scope: Scope,
    service: PeriodService,
) -> AcademicYearResponse:
    """Close an academic year."""
    logger.info("Closing academic year %s by %s", year_id, current_user.id)
    try:
        return await service.close_year(scope, year_id)
    except AcademicCoreError as e:
        raise to_http_exception(e)
