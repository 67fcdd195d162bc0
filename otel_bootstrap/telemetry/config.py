# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Telemetry bootstrap configuration module.

Loads exporter endpoints and the monitoring gate from environment variables
(or a local .env file). Values are validated before any pipeline object is
constructed, so a malformed URL fails fast with a pydantic ValidationError.

Environment Variables:
    TRACE_EXPORTER_URL: OTLP gRPC trace endpoint (default: http://localhost:4317)
    METRIC_EXPORTER_URL: OTLP HTTP metric endpoint (default: http://localhost:4318/v1/metrics)
    MONITORING_ENABLED: Enable telemetry, only "true" counts (default: false)
    DATABASE_PROBE: Database instrumentation to load, postgresql or mysql (default: postgresql)
    EXPORTER_TIMEOUT: Export timeout in seconds for both exporters (default: 10)
"""

from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resource attributes attached to every span and metric
SERVICE_NAME = "api"
SERVICE_VERSION = "1.0"

METRIC_EXPORT_INTERVAL_MILLIS = 5000

DATABASE_PROBES = ("postgresql", "mysql")


def parse_monitoring_flag(value: Any) -> bool:
    """
    Parse the monitoring gate.

    Only the string "true" enables monitoring, compared case-insensitively
    after trimming surrounding whitespace. Anything else, including None,
    "1" and "yes", disables it.

    Example:
        >>> parse_monitoring_flag("  TRUE ")
        True
        >>> parse_monitoring_flag("yes")
        False
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


class TelemetrySettings(BaseSettings):
    # Exporter endpoints
    TRACE_EXPORTER_URL: str = "http://localhost:4317"
    METRIC_EXPORTER_URL: str = "http://localhost:4318/v1/metrics"

    # Gate for the whole pipeline
    MONITORING_ENABLED: bool = False

    # Storage-layer probe, exactly one is registered
    DATABASE_PROBE: str = "postgresql"

    EXPORTER_TIMEOUT: float = 10.0

    @field_validator("TRACE_EXPORTER_URL", "METRIC_EXPORTER_URL")
    @classmethod
    def validate_exporter_url(cls, v: str) -> str:
        """Require an absolute http(s) URL with a host."""
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"exporter URL must be an absolute http(s) URL: {v!r}")
        return v.strip()

    @field_validator("MONITORING_ENABLED", mode="before")
    @classmethod
    def parse_enabled(cls, v: Any) -> bool:
        return parse_monitoring_flag(v)

    @field_validator("DATABASE_PROBE", mode="before")
    @classmethod
    def validate_database_probe(cls, v: Any) -> str:
        probe = str(v).strip().lower()
        if probe not in DATABASE_PROBES:
            raise ValueError(
                f"DATABASE_PROBE must be one of {', '.join(DATABASE_PROBES)}, got {v!r}"
            )
        return probe

    @field_validator("EXPORTER_TIMEOUT")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("EXPORTER_TIMEOUT must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Cached settings instance
_telemetry_settings: Optional[TelemetrySettings] = None


def get_telemetry_settings() -> TelemetrySettings:
    """
    Get telemetry settings, loading them from the environment on first use.

    Returns:
        TelemetrySettings: Validated settings, cached for the process lifetime
    """
    global _telemetry_settings

    if _telemetry_settings is None:
        _telemetry_settings = TelemetrySettings()

    return _telemetry_settings


def reset_telemetry_settings() -> None:
    """
    Reset the cached settings.

    This is primarily useful for testing purposes where you need to
    reload configuration with different environment variables.
    """
    global _telemetry_settings
    _telemetry_settings = None
