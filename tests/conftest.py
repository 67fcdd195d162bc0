# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

import logging
import signal

import pytest
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import \
    OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import \
    OTLPMetricExporter
from opentelemetry.sdk.metrics.export import MetricExportResult
from opentelemetry.sdk.trace.export import SpanExportResult

from otel_bootstrap.profiling import session as session_module
from otel_bootstrap.telemetry.config import reset_telemetry_settings
from otel_bootstrap.telemetry.core import reset_telemetry_sdk
from otel_bootstrap.telemetry.lifecycle import reset_shutdown_handler

TELEMETRY_ENV_VARS = [
    "TRACE_EXPORTER_URL",
    "METRIC_EXPORTER_URL",
    "MONITORING_ENABLED",
    "DATABASE_PROBE",
    "EXPORTER_TIMEOUT",
    "OTEL_SERVICE_NAME",
    "OTEL_RESOURCE_ATTRIBUTES",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Run every test in an empty directory with no telemetry variables set"""
    for name in TELEMETRY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    reset_telemetry_settings()
    reset_telemetry_sdk()
    reset_shutdown_handler()
    yield
    reset_telemetry_settings()
    reset_telemetry_sdk()
    reset_shutdown_handler()


@pytest.fixture(autouse=True)
def release_profiler_session():
    """Disconnect any profiler session a test left connected"""
    yield
    active = session_module._active_session
    if active is not None:
        active.disconnect()


@pytest.fixture
def restore_sigterm():
    """Restore the original SIGTERM disposition after the test"""
    original = signal.getsignal(signal.SIGTERM)
    yield
    signal.signal(signal.SIGTERM, original)


@pytest.fixture
def restore_root_logger():
    """Keep root logger handlers intact across setup_logging() calls"""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def offline_exporters(mocker):
    """Make exporters succeed without touching the network"""
    mocker.patch.object(
        OTLPSpanExporter, "export", return_value=SpanExportResult.SUCCESS
    )
    mocker.patch.object(
        OTLPMetricExporter, "export", return_value=MetricExportResult.SUCCESS
    )


@pytest.fixture
def no_global_registration(mocker):
    """Keep providers and probes out of process-wide OpenTelemetry state"""
    return {
        "set_tracer_provider": mocker.patch(
            "otel_bootstrap.telemetry.core.trace.set_tracer_provider"
        ),
        "set_meter_provider": mocker.patch(
            "otel_bootstrap.telemetry.core.metrics.set_meter_provider"
        ),
        "setup_instrumentation": mocker.patch(
            "otel_bootstrap.telemetry.core.setup_instrumentation", return_value=[]
        ),
        "teardown_instrumentation": mocker.patch(
            "otel_bootstrap.telemetry.core.teardown_instrumentation"
        ),
    }
