# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""Main CLI entry point."""

import json
import runpy
import sys

import click

from otel_bootstrap import __version__
from otel_bootstrap.core.logging import setup_logging
from otel_bootstrap.profiling.capture import capture_profile
from otel_bootstrap.telemetry.config import get_telemetry_settings
from otel_bootstrap.telemetry.core import init_telemetry, shutdown_telemetry
from otel_bootstrap.telemetry.lifecycle import register_shutdown_handler

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])
SCRIPT_SETTINGS = dict(ignore_unknown_options=True, allow_interspersed_args=False)


def _run_script(script: str, args) -> None:
    sys.argv = [script, *args]
    runpy.run_path(script, run_name="__main__")


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="otel-bootstrap")
def cli():
    """otel-bootstrap - telemetry and profiling bootstrap.

    \b
    Environment variables:
      TRACE_EXPORTER_URL  - OTLP gRPC trace endpoint
      METRIC_EXPORTER_URL - OTLP HTTP metric endpoint
      MONITORING_ENABLED  - "true" to start telemetry
      DATABASE_PROBE      - postgresql or mysql
    """
    setup_logging()


@cli.command("run", context_settings=SCRIPT_SETTINGS)
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run_cmd(script: str, args):
    """Run SCRIPT with telemetry started first (when MONITORING_ENABLED is true)."""
    sdk = init_telemetry(gated=True)
    if sdk is not None:
        register_shutdown_handler(sdk)
    try:
        _run_script(script, args)
    finally:
        shutdown_telemetry()


@cli.command("profile", context_settings=SCRIPT_SETTINGS)
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def profile_cmd(script: str, args):
    """Run SCRIPT while capturing a 10 second CPU profile to ./profile.cpuprofile."""
    capture = capture_profile()
    _run_script(script, args)
    path = capture.wait()
    click.echo(f"Profile written to {path}")


@cli.command("config")
def config_cmd():
    """Print the resolved telemetry configuration as JSON."""
    settings = get_telemetry_settings()
    click.echo(json.dumps(settings.model_dump(), indent=2))


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
