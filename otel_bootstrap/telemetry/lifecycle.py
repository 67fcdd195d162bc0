# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Termination signal handling for the telemetry pipeline.

On SIGTERM the pipeline is flushed and closed once, a completion message is
logged and the process exits with status 0. With the signal.signal handler a
shutdown failure is not caught and ends the process through the interpreter's
default handling; on an asyncio loop, where a task exception would otherwise
only be logged, it is logged and the process exits with status 1.
"""

import asyncio
import logging
import signal
import sys
from typing import Callable, Optional

from otel_bootstrap.telemetry.core import TelemetrySDK

logger = logging.getLogger(__name__)

SHUTDOWN_COMPLETE_MESSAGE = "OpenTelemetry shutdown complete."


class ShutdownHandler:
    """Signal handler that shuts the SDK down exactly once and exits."""

    def __init__(self, sdk: TelemetrySDK, exit_func: Callable[[int], None] = sys.exit):
        self.sdk = sdk
        self.exit_func = exit_func
        self.fired = False

    def __call__(self, signum: int, frame=None) -> None:
        # Handlers only run in the main thread
        if self.fired:
            logger.debug(f"Ignoring {signal.Signals(signum).name}, shutdown in progress")
            return
        self.fired = True

        logger.info(f"Received {signal.Signals(signum).name}, shutting down OpenTelemetry")
        self.sdk.shutdown()
        logger.info(SHUTDOWN_COMPLETE_MESSAGE)
        self.exit_func(0)


# Installed handler, one per process
_shutdown_handler: Optional[ShutdownHandler] = None


def register_shutdown_handler(
    sdk: TelemetrySDK,
    signum: int = signal.SIGTERM,
    exit_func: Callable[[int], None] = sys.exit,
) -> ShutdownHandler:
    """
    Install the termination handler for the given SDK.

    Must be called from the main thread. A second registration returns the
    handler that is already installed.

    Args:
        sdk: Started telemetry handle to shut down
        signum: Signal to react to (default: SIGTERM)
        exit_func: Called with 0 after a successful shutdown (default: sys.exit)

    Returns:
        ShutdownHandler: The installed handler
    """
    global _shutdown_handler

    if _shutdown_handler is not None:
        logger.warning("Shutdown handler already registered, keeping the existing one")
        return _shutdown_handler

    handler = ShutdownHandler(sdk, exit_func)
    signal.signal(signum, handler)
    _shutdown_handler = handler
    logger.debug(f"Shutdown handler registered for {signal.Signals(signum).name}")
    return handler


def register_asyncio_shutdown_handler(
    sdk: TelemetrySDK,
    loop: asyncio.AbstractEventLoop,
    signum: int = signal.SIGTERM,
    exit_func: Callable[[int], None] = sys.exit,
) -> Callable[[], None]:
    """
    Install the termination handler on a running asyncio loop.

    The blocking SDK shutdown runs in the loop's default executor so the loop
    keeps serving callbacks while exporters flush. Afterwards the loop is
    stopped and exit_func is called with 0, or with 1 if the shutdown raised.

    Returns:
        callable: The callback passed to loop.add_signal_handler
    """
    state = {"task": None}

    async def _shutdown() -> None:
        try:
            await loop.run_in_executor(None, sdk.shutdown)
        except Exception:
            logger.exception("OpenTelemetry shutdown failed")
            loop.stop()
            exit_func(1)
            return

        logger.info(SHUTDOWN_COMPLETE_MESSAGE)
        loop.stop()
        exit_func(0)

    def _on_signal() -> None:
        if state["task"] is not None:
            logger.debug(f"Ignoring {signal.Signals(signum).name}, shutdown in progress")
            return
        logger.info(f"Received {signal.Signals(signum).name}, shutting down OpenTelemetry")
        state["task"] = loop.create_task(_shutdown())

    loop.add_signal_handler(signum, _on_signal)
    return _on_signal


def reset_shutdown_handler() -> None:
    """Forget the installed handler. Intended for tests."""
    global _shutdown_handler
    _shutdown_handler = None
