# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the academic records core.

Each domain module provides services that take an explicit TenantScope and
an async database session.

Domains:
    academic_block: Student block checks (financial, disciplinary, administrative).
    academic_period: Academic years, terms, grading windows and closures.
    audit: Audit trail of privileged transitions.
    auth: JWT decoding.
    completion: Completion eligibility and completion records.
    grading: Grade entry behind the grading window guard.
    tenancy: Tenant scope resolution and scoped queries.
"""
