# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit domain package."""

from src.domains.audit.service import AuditService

__all__ = ["AuditService"]
