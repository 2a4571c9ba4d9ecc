# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant scope domain package.

This package resolves the institution of a request from its verified
session and builds tenant-restricted queries.
"""

from src.domains.tenancy.institution import get_institution, resolve_academic_type
from src.domains.tenancy.scope import (
    SessionContext,
    TenantScope,
    TenantScopeResolver,
    scoped,
)

__all__ = [
    "get_institution",
    "resolve_academic_type",
    "SessionContext",
    "TenantScope",
    "TenantScopeResolver",
    "scoped",
]
