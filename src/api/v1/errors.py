# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Translation of domain errors into HTTP errors."""

import logging

from fastapi import HTTPException, status

from src.core.exceptions import (
    AcademicCoreError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PolicyViolationError,
    ValidationError,
)
from src.domains.completion import EligibilityNotMetError

logger = logging.getLogger(__name__)

# Checked in order; subclasses first
_STATUS_BY_ERROR: tuple[tuple[type[AcademicCoreError], int], ...] = (
    (EligibilityNotMetError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PolicyViolationError, status.HTTP_423_LOCKED),
)


def to_http_exception(error: AcademicCoreError) -> HTTPException:
    """Build the HTTPException for a domain error.

    Args:
        error: Domain error raised by a service.

    Returns:
        HTTPException carrying the error message and, where present, its
        structured details.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break

    if isinstance(error, ForbiddenError):
        return HTTPException(status_code=status_code, detail=error.message)

    if error.details:
        detail: object = {"message": error.message, **error.details}
    else:
        detail = error.message

    logger.debug("%s mapped to HTTP %s: %s", type(error).__name__, status_code, error.message)
    return HTTPException(status_code=status_code, detail=detail)
