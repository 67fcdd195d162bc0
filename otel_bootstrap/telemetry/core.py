# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Core telemetry lifecycle.

TelemetrySDK owns the whole pipeline for one process and moves through
UNINITIALIZED -> RUNNING -> SHUTTING_DOWN -> TERMINATED exactly once.
The module-level helpers keep a single handle, initialized at process start
and torn down on termination.
"""

import enum
import logging
import threading
from typing import Any, List, Optional

from opentelemetry import metrics, trace

from otel_bootstrap.core.exceptions import TelemetryStateError
from otel_bootstrap.telemetry.config import (TelemetrySettings,
                                             get_telemetry_settings)
from otel_bootstrap.telemetry.instrumentation import (setup_instrumentation,
                                                      teardown_instrumentation)
from otel_bootstrap.telemetry.providers import (build_meter_provider,
                                                build_resource,
                                                build_tracer_provider,
                                                configure_diagnostics)

logger = logging.getLogger(__name__)


class TelemetryState(str, enum.Enum):
    UNINITIALIZED = "UNINITIALIZED"  # Built, nothing registered yet
    RUNNING = "RUNNING"  # Providers global, probes attached
    SHUTTING_DOWN = "SHUTTING_DOWN"  # Flushing exporters
    TERMINATED = "TERMINATED"  # Pipeline closed


class TelemetrySDK:
    """
    Handle for the combined trace and metric pipeline.

    Constructing the handle builds the resource, exporters and providers but
    does not contact the collectors. start() registers the providers globally
    and attaches the instrumentation probes; shutdown() flushes and closes
    everything.
    """

    def __init__(self, settings: TelemetrySettings):
        self.settings = settings
        self._lock = threading.Lock()
        self._state = TelemetryState.UNINITIALIZED
        self._instrumentors: List[Any] = []

        configure_diagnostics()

        self.resource = build_resource()
        self.tracer_provider = build_tracer_provider(
            self.resource, settings.TRACE_EXPORTER_URL, settings.EXPORTER_TIMEOUT
        )
        self.meter_provider = build_meter_provider(
            self.resource, settings.METRIC_EXPORTER_URL, settings.EXPORTER_TIMEOUT
        )

    @property
    def state(self) -> TelemetryState:
        return self._state

    @property
    def instrumentors(self) -> List[Any]:
        return list(self._instrumentors)

    def start(self) -> None:
        """
        Attach the probes, then register the providers globally.

        A probe failure leaves no probe attached and the global providers
        untouched.

        Raises:
            TelemetryStateError: If the SDK was already started
        """
        with self._lock:
            if self._state is not TelemetryState.UNINITIALIZED:
                raise TelemetryStateError(
                    f"Cannot start telemetry in state {self._state.value}"
                )

            self._instrumentors = setup_instrumentation(
                self.tracer_provider,
                self.meter_provider,
                self.settings.DATABASE_PROBE,
                logger,
            )
            trace.set_tracer_provider(self.tracer_provider)
            metrics.set_meter_provider(self.meter_provider)
            self._state = TelemetryState.RUNNING

        logger.info(
            f"OpenTelemetry started: traces -> {self.settings.TRACE_EXPORTER_URL}, "
            f"metrics -> {self.settings.METRIC_EXPORTER_URL}"
        )

    def shutdown(self) -> bool:
        """
        Flush and close the pipeline.

        Only the first call does any work; later calls return False.

        Returns:
            bool: True if this call performed the shutdown

        Raises:
            TelemetryStateError: If the SDK was never started
        """
        with self._lock:
            if self._state is TelemetryState.UNINITIALIZED:
                raise TelemetryStateError("Cannot shut down telemetry before start")
            if self._state is not TelemetryState.RUNNING:
                return False
            self._state = TelemetryState.SHUTTING_DOWN

        teardown_instrumentation(self._instrumentors, logger)
        self._instrumentors = []

        self.tracer_provider.shutdown()
        logger.debug("TracerProvider shutdown completed")
        self.meter_provider.shutdown()
        logger.debug("MeterProvider shutdown completed")

        self._state = TelemetryState.TERMINATED
        return True


# Process-wide handle
_telemetry_sdk: Optional[TelemetrySDK] = None


def init_telemetry(
    settings: Optional[TelemetrySettings] = None, gated: bool = True
) -> Optional[TelemetrySDK]:
    """
    Build and start the process-wide telemetry pipeline.

    Args:
        settings: Settings to use, defaults to get_telemetry_settings()
        gated: When True, do nothing unless MONITORING_ENABLED is "true"

    Returns:
        TelemetrySDK: The started handle, or None when the gate is closed

    Example:
        >>> sdk = init_telemetry()
        >>> if sdk is not None:
        ...     register_shutdown_handler(sdk)
    """
    global _telemetry_sdk

    if settings is None:
        settings = get_telemetry_settings()

    if gated and not settings.MONITORING_ENABLED:
        logger.info("Monitoring disabled, OpenTelemetry not started")
        return None

    if _telemetry_sdk is not None:
        raise TelemetryStateError("Telemetry already initialized for this process")

    sdk = TelemetrySDK(settings)
    sdk.start()
    _telemetry_sdk = sdk
    return sdk


def get_telemetry_sdk() -> Optional[TelemetrySDK]:
    return _telemetry_sdk


def is_telemetry_enabled() -> bool:
    """Check whether the process-wide pipeline is running."""
    return (
        _telemetry_sdk is not None and _telemetry_sdk.state is TelemetryState.RUNNING
    )


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def get_meter(name: str) -> metrics.Meter:
    return metrics.get_meter(name)


def shutdown_telemetry() -> bool:
    """
    Shut down the process-wide pipeline if one is running.

    Returns:
        bool: True if a shutdown was performed by this call
    """
    if _telemetry_sdk is None or _telemetry_sdk.state is not TelemetryState.RUNNING:
        return False
    return _telemetry_sdk.shutdown()


def reset_telemetry_sdk() -> None:
    """Forget the process-wide handle. Intended for tests."""
    global _telemetry_sdk
    _telemetry_sdk = None
