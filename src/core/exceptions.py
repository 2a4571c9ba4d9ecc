# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy shared by the academic core domains.

Domain services raise these exceptions; the API layer translates them into
HTTP responses. Eligibility failures are never raised: they are returned as
a structured negative report.

Hierarchy:
    AcademicCoreError
    ├── ValidationError          malformed or contradictory input
    ├── NotFoundError            referenced entity absent in the caller's tenant
    ├── ForbiddenError           missing scope or tenant mismatch
    ├── ConflictError            duplicate or overlapping data
    │   └── InvalidTransitionError
    └── PolicyViolationError     write rejected by an institutional policy
"""

from typing import Any


class AcademicCoreError(Exception):
    """Base exception for all academic core errors.

    Attributes:
        message: Human readable error message.
        details: Optional structured context for the caller.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(AcademicCoreError):
    """Raised when input is malformed or contradictory."""

    pass


class NotFoundError(AcademicCoreError):
    """Raised when a referenced entity does not exist in the caller's tenant."""

    pass


class ForbiddenError(AcademicCoreError):
    """Raised when the caller has no usable tenant scope.

    The message is always generic so that it never reveals whether a
    resource exists in another institution.
    """

    GENERIC_MESSAGE = "Access to the requested institution scope is not allowed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.GENERIC_MESSAGE)


class ConflictError(AcademicCoreError):
    """Raised when a write collides with existing data."""

    pass


class InvalidTransitionError(ConflictError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, entity: str, current: str, target: str, message: str | None = None) -> None:
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move {entity} from {current} to {target}",
            {"entity": entity, "current": current, "target": target},
        )


class PolicyViolationError(AcademicCoreError):
    """Raised when an institutional policy rejects a write."""

    pass
