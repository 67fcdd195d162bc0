# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
OpenTelemetry auto-instrumentation registration.

This module registers:
- Requests (sync HTTP client)
- HTTPX (sync and async HTTP client)
- urllib3 (low-level HTTP client)
- Logging (trace id correlation on log records)
- System metrics (CPU, memory, etc.)
- Exactly one database probe: psycopg2 (postgresql) or PyMySQL (mysql)

Generic probes whose instrumentation package is missing are skipped. The
database probe is skipped with a warning when its driver (psycopg2 or PyMySQL)
is not installed; a missing instrumentation package or any other failure
propagates to the caller, after the probes already attached are detached.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from otel_bootstrap.telemetry.config import DATABASE_PROBES

GENERIC_PROBES = ("requests", "httpx", "urllib3", "logging", "system_metrics")


def build_instrumentations(database_probe: str) -> List[str]:
    """
    Return the ordered probe names for a pipeline.

    Args:
        database_probe: Name of the single database probe to add

    Returns:
        list: Generic probe names followed by the database probe

    Raises:
        ValueError: If database_probe is not a known probe
    """
    if database_probe not in DATABASE_PROBES:
        raise ValueError(
            f"Unknown database probe {database_probe!r}, "
            f"expected one of {', '.join(DATABASE_PROBES)}"
        )
    return [*GENERIC_PROBES, database_probe]


def setup_instrumentation(
    tracer_provider: Any,
    meter_provider: Any,
    database_probe: str,
    logger: Optional[logging.Logger] = None,
) -> List[Any]:
    """
    Instrument every probe for the given providers.

    Args:
        tracer_provider: TracerProvider the probes record spans on
        meter_provider: MeterProvider the probes record metrics on
        database_probe: Name of the single database probe to register
        logger: Logger instance (optional, will create one if not provided)

    Returns:
        list: Instrumentor instances that are now active
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    instrumentors = []
    try:
        for name in build_instrumentations(database_probe):
            instrumentor = _PROBE_SETUP[name](logger, tracer_provider, meter_provider)
            if instrumentor is not None:
                instrumentors.append(instrumentor)
    except Exception:
        teardown_instrumentation(instrumentors, logger)
        raise
    return instrumentors


def teardown_instrumentation(
    instrumentors: List[Any], logger: Optional[logging.Logger] = None
) -> None:
    """Uninstrument previously enabled probes, most recent first."""
    if logger is None:
        logger = logging.getLogger(__name__)

    for instrumentor in reversed(instrumentors):
        if instrumentor.is_instrumented_by_opentelemetry:
            instrumentor.uninstrument()
            logger.debug(f"{type(instrumentor).__name__} uninstrumented")


def _activate(instrumentor: Any, logger: logging.Logger, label: str, **kwargs):
    """Instrument and report whether the probe actually attached.

    BaseInstrumentor.instrument() is a no-op when the instrumented library
    itself is not installed, so the flag is checked afterwards.
    """
    instrumentor.instrument(**kwargs)
    if instrumentor.is_instrumented_by_opentelemetry:
        logger.info(f"✓ {label} instrumentation enabled")
        return instrumentor
    logger.debug(f"{label} instrumentation skipped (library not installed)")
    return None


def _setup_requests_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    """Setup Requests instrumentation for tracing sync HTTP client requests."""
    try:
        from opentelemetry.instrumentation.requests import RequestsInstrumentor
    except ImportError:
        logger.debug("Requests instrumentation not available (package not installed)")
        return None

    return _activate(
        RequestsInstrumentor(),
        logger,
        "Requests",
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
    )


def _setup_httpx_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    """Setup HTTPX instrumentation for tracing sync and async HTTP client requests."""
    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    except ImportError:
        logger.debug("HTTPX instrumentation not available (package not installed)")
        return None

    return _activate(
        HTTPXClientInstrumentor(),
        logger,
        "HTTPX",
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
    )


def _setup_urllib3_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    try:
        from opentelemetry.instrumentation.urllib3 import URLLib3Instrumentor
    except ImportError:
        logger.debug("urllib3 instrumentation not available (package not installed)")
        return None

    return _activate(
        URLLib3Instrumentor(),
        logger,
        "urllib3",
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
    )


def _setup_logging_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    """Inject trace and span ids into log records without touching the log format."""
    try:
        from opentelemetry.instrumentation.logging import LoggingInstrumentor
    except ImportError:
        logger.debug("Logging instrumentation not available (package not installed)")
        return None

    return _activate(
        LoggingInstrumentor(),
        logger,
        "Logging",
        tracer_provider=tracer_provider,
        set_logging_format=False,
    )


def _setup_system_metrics_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    """Setup system metrics instrumentation for CPU, memory, etc."""
    try:
        from opentelemetry.instrumentation.system_metrics import \
            SystemMetricsInstrumentor
    except ImportError:
        logger.debug(
            "System metrics instrumentation not available (package not installed)"
        )
        return None

    return _activate(
        SystemMetricsInstrumentor(),
        logger,
        "System metrics",
        meter_provider=meter_provider,
    )


def _driver_missing(error: ModuleNotFoundError, driver: str) -> bool:
    """True when the import failed on the database driver itself."""
    return error.name == driver


def _setup_postgresql_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    """Setup psycopg2 instrumentation for tracing PostgreSQL queries."""
    try:
        from opentelemetry.instrumentation.psycopg2 import Psycopg2Instrumentor
    except ModuleNotFoundError as e:
        # The contrib package imports psycopg2 at module level
        if not _driver_missing(e, "psycopg2"):
            raise
        logger.warning(
            "PostgreSQL instrumentation skipped (psycopg2 driver not installed)"
        )
        return None

    return _activate(
        Psycopg2Instrumentor(),
        logger,
        "PostgreSQL (psycopg2)",
        tracer_provider=tracer_provider,
    )


def _setup_mysql_instrumentation(
    logger: logging.Logger, tracer_provider: Any, meter_provider: Any
):
    """Setup PyMySQL instrumentation for tracing MySQL queries."""
    try:
        from opentelemetry.instrumentation.pymysql import PyMySQLInstrumentor
    except ModuleNotFoundError as e:
        if not _driver_missing(e, "pymysql"):
            raise
        logger.warning("MySQL instrumentation skipped (PyMySQL driver not installed)")
        return None

    return _activate(
        PyMySQLInstrumentor(),
        logger,
        "MySQL (PyMySQL)",
        tracer_provider=tracer_provider,
    )


_PROBE_SETUP: Dict[str, Callable[..., Any]] = {
    "requests": _setup_requests_instrumentation,
    "httpx": _setup_httpx_instrumentation,
    "urllib3": _setup_urllib3_instrumentation,
    "logging": _setup_logging_instrumentation,
    "system_metrics": _setup_system_metrics_instrumentation,
    "postgresql": _setup_postgresql_instrumentation,
    "mysql": _setup_mysql_instrumentation,
}
