# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Process-start entry point for telemetry.

Import this module before the application's own imports so the probes can
patch client libraries first:

    import otel_bootstrap.telemetry.bootstrap  # noqa: F401

The pipeline only starts when MONITORING_ENABLED is "true".
"""

import logging
from typing import Optional

from otel_bootstrap.core.logging import setup_logging
from otel_bootstrap.telemetry.core import TelemetrySDK, init_telemetry
from otel_bootstrap.telemetry.lifecycle import register_shutdown_handler

logger = logging.getLogger(__name__)


def run() -> Optional[TelemetrySDK]:
    setup_logging()

    sdk = init_telemetry(gated=True)
    if sdk is not None:
        register_shutdown_handler(sdk)
    return sdk


sdk = run()
