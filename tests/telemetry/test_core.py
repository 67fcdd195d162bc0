# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

import sys
import time

import pytest
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION
from pydantic import ValidationError

from otel_bootstrap.core.exceptions import TelemetryStateError
from otel_bootstrap.telemetry import core
from otel_bootstrap.telemetry.config import TelemetrySettings
from otel_bootstrap.telemetry.core import (TelemetrySDK, TelemetryState,
                                           get_telemetry_sdk, init_telemetry,
                                           is_telemetry_enabled,
                                           shutdown_telemetry)


@pytest.fixture
def settings():
    return TelemetrySettings(
        TRACE_EXPORTER_URL="http://127.0.0.1:9",
        METRIC_EXPORTER_URL="http://127.0.0.1:9/v1/metrics",
        MONITORING_ENABLED=True,
        EXPORTER_TIMEOUT=1,
    )


@pytest.fixture
def sdk(settings, offline_exporters, no_global_registration):
    handle = TelemetrySDK(settings)
    yield handle
    if handle.state is TelemetryState.RUNNING:
        handle.shutdown()
    elif handle.state is TelemetryState.UNINITIALIZED:
        handle.tracer_provider.shutdown()
        handle.meter_provider.shutdown()


@pytest.mark.unit
class TestTelemetrySDK:
    """Test the SDK handle lifecycle"""

    def test_new_sdk_is_uninitialized(self, sdk):
        assert sdk.state is TelemetryState.UNINITIALIZED

    def test_resource_carries_fixed_service_attributes(self, sdk):
        assert sdk.resource.attributes[SERVICE_NAME] == "api"
        assert sdk.resource.attributes[SERVICE_VERSION] == "1.0"

    def test_start_with_unreachable_endpoints_does_not_block(self, sdk):
        started_at = time.monotonic()
        sdk.start()

        assert sdk.state is TelemetryState.RUNNING
        assert time.monotonic() - started_at < 1.0

    def test_start_registers_providers_and_probes(self, sdk, no_global_registration):
        sdk.start()

        no_global_registration["set_tracer_provider"].assert_called_once_with(
            sdk.tracer_provider
        )
        no_global_registration["set_meter_provider"].assert_called_once_with(
            sdk.meter_provider
        )
        no_global_registration["setup_instrumentation"].assert_called_once()
        args = no_global_registration["setup_instrumentation"].call_args.args
        assert args[:3] == (sdk.tracer_provider, sdk.meter_provider, "postgresql")

    def test_start_twice_raises(self, sdk):
        sdk.start()

        with pytest.raises(TelemetryStateError):
            sdk.start()

    def test_shutdown_before_start_raises(self, sdk):
        with pytest.raises(TelemetryStateError):
            sdk.shutdown()

    def test_shutdown_runs_once(self, sdk, mocker, no_global_registration):
        sdk.start()
        tracer_shutdown = mocker.spy(sdk.tracer_provider, "shutdown")
        meter_shutdown = mocker.spy(sdk.meter_provider, "shutdown")

        assert sdk.shutdown() is True
        assert sdk.shutdown() is False

        assert sdk.state is TelemetryState.TERMINATED
        tracer_shutdown.assert_called_once()
        meter_shutdown.assert_called_once()
        no_global_registration["teardown_instrumentation"].assert_called_once()

    def test_start_after_shutdown_raises(self, sdk):
        sdk.start()
        sdk.shutdown()

        with pytest.raises(TelemetryStateError):
            sdk.start()

    def test_shutdown_failure_propagates(self, sdk, mocker):
        sdk.start()
        mocker.patch.object(
            sdk.tracer_provider, "shutdown", side_effect=RuntimeError("flush failed")
        )

        with pytest.raises(RuntimeError, match="flush failed"):
            sdk.shutdown()

        assert sdk.state is TelemetryState.SHUTTING_DOWN
        sdk.meter_provider.shutdown()

    def test_instrumentation_failure_leaves_globals_untouched(
        self, sdk, no_global_registration
    ):
        no_global_registration["setup_instrumentation"].side_effect = ImportError(
            "broken contrib package"
        )

        with pytest.raises(ImportError):
            sdk.start()

        assert sdk.state is TelemetryState.UNINITIALIZED
        no_global_registration["set_tracer_provider"].assert_not_called()
        no_global_registration["set_meter_provider"].assert_not_called()


@pytest.mark.unit
class TestInitTelemetry:
    """Test the process-wide helpers"""

    @pytest.fixture
    def sdk_cls(self, mocker):
        sdk_cls = mocker.patch.object(core, "TelemetrySDK")
        sdk_cls.return_value.state = TelemetryState.RUNNING
        return sdk_cls

    def test_gate_closed_by_default(self, sdk_cls):
        assert init_telemetry() is None

        sdk_cls.assert_not_called()
        assert get_telemetry_sdk() is None
        assert is_telemetry_enabled() is False

    @pytest.mark.parametrize("flag", ["true", "TRUE", "  True  "])
    def test_gate_opened_by_true(self, monkeypatch, sdk_cls, flag):
        monkeypatch.setenv("MONITORING_ENABLED", flag)

        sdk = init_telemetry()

        assert sdk is sdk_cls.return_value
        sdk.start.assert_called_once()
        assert get_telemetry_sdk() is sdk
        assert is_telemetry_enabled() is True

    @pytest.mark.parametrize("flag", ["false", "1", "yes", ""])
    def test_gate_stays_closed_for_other_values(self, monkeypatch, sdk_cls, flag):
        monkeypatch.setenv("MONITORING_ENABLED", flag)

        assert init_telemetry() is None
        sdk_cls.assert_not_called()

    def test_ungated_starts_unconditionally(self, sdk_cls):
        sdk = init_telemetry(gated=False)

        assert sdk is sdk_cls.return_value
        sdk.start.assert_called_once()

    def test_explicit_settings_used(self, sdk_cls, settings):
        init_telemetry(settings)

        sdk_cls.assert_called_once_with(settings)

    def test_second_init_raises(self, sdk_cls):
        init_telemetry(gated=False)

        with pytest.raises(TelemetryStateError):
            init_telemetry(gated=False)

    def test_start_failure_leaves_no_handle(self, sdk_cls):
        sdk_cls.return_value.start.side_effect = ImportError("no psycopg2 probe")

        with pytest.raises(ImportError):
            init_telemetry(gated=False)

        assert get_telemetry_sdk() is None

    def test_shutdown_telemetry_without_sdk(self):
        assert shutdown_telemetry() is False

    def test_shutdown_telemetry_delegates(self, sdk_cls):
        sdk = init_telemetry(gated=False)
        sdk.shutdown.return_value = True

        assert shutdown_telemetry() is True
        sdk.shutdown.assert_called_once()

    def test_invalid_configuration_fails_before_construction(
        self, monkeypatch, sdk_cls
    ):
        monkeypatch.setenv("MONITORING_ENABLED", "true")
        monkeypatch.setenv("TRACE_EXPORTER_URL", "collector")

        with pytest.raises(ValidationError):
            init_telemetry()

        sdk_cls.assert_not_called()


@pytest.mark.unit
class TestStartWithoutDatabaseDriver:
    """The default enabled pipeline on a host without psycopg2"""

    def test_enabled_default_configuration_reaches_running(
        self, monkeypatch, mocker, offline_exporters
    ):
        monkeypatch.setenv("MONITORING_ENABLED", "true")
        monkeypatch.setenv("TRACE_EXPORTER_URL", "http://127.0.0.1:9")
        monkeypatch.setenv("METRIC_EXPORTER_URL", "http://127.0.0.1:9/v1/metrics")
        mocker.patch.dict(sys.modules, {"psycopg2": None})
        sys.modules.pop("opentelemetry.instrumentation.psycopg2", None)
        mocker.patch("otel_bootstrap.telemetry.core.trace.set_tracer_provider")
        mocker.patch("otel_bootstrap.telemetry.core.metrics.set_meter_provider")

        sdk = init_telemetry()
        try:
            assert sdk.settings.DATABASE_PROBE == "postgresql"
            assert sdk.state is TelemetryState.RUNNING
            assert "Psycopg2Instrumentor" not in [
                type(instrumentor).__name__ for instrumentor in sdk.instrumentors
            ]
        finally:
            sdk.shutdown()

        assert sdk.state is TelemetryState.TERMINATED
