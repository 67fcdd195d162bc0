# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0


class TelemetryStateError(RuntimeError):
    """Raised when the telemetry SDK is started or stopped out of order."""


class ProfilerSessionError(RuntimeError):
    """Raised when a profiler session is used outside its protocol."""
