# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
OpenTelemetry bootstrap.

Directory Structure:
    telemetry/
    ├── __init__.py          # Public API exports (this file)
    ├── bootstrap.py         # Import-time entry point
    ├── config.py            # Configuration from environment
    ├── core.py              # TelemetrySDK handle and lifecycle
    ├── instrumentation.py   # Generic and database probes
    ├── lifecycle.py         # SIGTERM shutdown handling
    └── providers.py         # Resource, TracerProvider and MeterProvider setup

Usage:
    from otel_bootstrap.telemetry import init_telemetry, register_shutdown_handler

    sdk = init_telemetry()
    if sdk is not None:
        register_shutdown_handler(sdk)
"""

# Configuration
from otel_bootstrap.telemetry.config import (TelemetrySettings,
                                             get_telemetry_settings,
                                             parse_monitoring_flag)
# Core initialization and lifecycle
from otel_bootstrap.telemetry.core import (TelemetrySDK, TelemetryState,
                                           get_meter, get_tracer,
                                           init_telemetry,
                                           is_telemetry_enabled,
                                           shutdown_telemetry)
# Signal handling
from otel_bootstrap.telemetry.lifecycle import (
    register_asyncio_shutdown_handler, register_shutdown_handler)

__all__ = [
    # Config
    "TelemetrySettings",
    "get_telemetry_settings",
    "parse_monitoring_flag",
    # Core
    "TelemetrySDK",
    "TelemetryState",
    "init_telemetry",
    "shutdown_telemetry",
    "is_telemetry_enabled",
    "get_tracer",
    "get_meter",
    # Lifecycle
    "register_shutdown_handler",
    "register_asyncio_shutdown_handler",
]
