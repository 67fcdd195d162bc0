# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
OpenTelemetry provider construction module.

Builds the resource, the TracerProvider with an OTLP gRPC span exporter and
the MeterProvider with a periodic OTLP HTTP metric exporter. Nothing here
opens a network connection: exporters connect lazily on their first export,
from the SDK's background workers.
"""

import logging

from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import \
    OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import \
    OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import (SERVICE_NAME, SERVICE_VERSION,
                                         Resource)
from opentelemetry.sdk.trace import TracerProvider as SDKTracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from otel_bootstrap.telemetry import config

logger = logging.getLogger(__name__)


def configure_diagnostics(level: int = logging.ERROR) -> None:
    """Limit the SDK's own diagnostic output to errors."""
    logging.getLogger("opentelemetry").setLevel(level)


def build_resource() -> Resource:
    """
    Build the resource descriptor attached to all emitted telemetry.

    Explicit attributes win over OTEL_SERVICE_NAME and OTEL_RESOURCE_ATTRIBUTES,
    so the service name and version are always the fixed ones.
    """
    return Resource.create(
        {
            SERVICE_NAME: config.SERVICE_NAME,
            SERVICE_VERSION: config.SERVICE_VERSION,
        }
    )


def build_tracer_provider(
    resource: Resource, endpoint: str, timeout: float
) -> SDKTracerProvider:
    """
    Build a TracerProvider exporting spans over OTLP gRPC.

    Args:
        resource: OpenTelemetry resource with service attributes
        endpoint: OTLP gRPC collector URL
        timeout: Export timeout in seconds

    Returns:
        SDKTracerProvider: Provider with a BatchSpanProcessor attached
    """
    span_exporter = OTLPSpanExporter(endpoint=endpoint, timeout=timeout)

    tracer_provider = SDKTracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger.debug(f"TracerProvider built with endpoint: {endpoint}")
    return tracer_provider


def build_meter_provider(
    resource: Resource, endpoint: str, timeout: float
) -> SDKMeterProvider:
    """
    Build a MeterProvider exporting metrics over OTLP HTTP (protobuf).

    The periodic reader exports every METRIC_EXPORT_INTERVAL_MILLIS (5000 ms).

    Args:
        resource: OpenTelemetry resource with service attributes
        endpoint: OTLP HTTP metrics URL, e.g. http://collector:4318/v1/metrics
        timeout: Export timeout in seconds

    Returns:
        SDKMeterProvider: Provider with a periodic exporting reader
    """
    metric_exporter = OTLPMetricExporter(endpoint=endpoint, timeout=timeout)

    metric_reader = PeriodicExportingMetricReader(
        metric_exporter,
        export_interval_millis=config.METRIC_EXPORT_INTERVAL_MILLIS,
    )

    meter_provider = SDKMeterProvider(resource=resource, metric_readers=[metric_reader])

    logger.debug(
        f"MeterProvider built with endpoint: {endpoint}, "
        f"export interval: {config.METRIC_EXPORT_INTERVAL_MILLIS}ms"
    )
    return meter_provider
