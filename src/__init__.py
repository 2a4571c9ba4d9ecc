"""Academic Records Core.

Multi-tenant academic period lifecycle and course-completion eligibility
services for secondary and higher-education institutions.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
