# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Process-start entry point for a one-off CPU profile.

Importing this module profiles the process for ten seconds and writes
./profile.cpuprofile. A failed capture ends the process with status 1:

    import otel_bootstrap.profiling.bootstrap  # noqa: F401
"""

from otel_bootstrap.profiling.capture import capture_profile

capture = capture_profile(exit_on_error=True)
