# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""Time-boxed CPU profile capture to a JSON file."""

from otel_bootstrap.profiling.capture import (PROFILE_DURATION_SECONDS,
                                              PROFILE_OUTPUT_PATH,
                                              ProfileCapture, capture_profile,
                                              write_profile)
from otel_bootstrap.profiling.profiler import CpuProfiler
from otel_bootstrap.profiling.session import ProfilerSession

__all__ = [
    "PROFILE_DURATION_SECONDS",
    "PROFILE_OUTPUT_PATH",
    "CpuProfiler",
    "ProfileCapture",
    "ProfilerSession",
    "capture_profile",
    "write_profile",
]
