# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Profiler session.

A session is the handle through which a process profiles itself:
connect, enable the profiler, start and stop it, then disconnect.
Only one session can be connected per process at a time.
"""

import logging
import threading
from typing import Any, Dict, Optional

from otel_bootstrap.core.exceptions import ProfilerSessionError
from otel_bootstrap.profiling.profiler import CpuProfiler

logger = logging.getLogger(__name__)

_active_session: Optional["ProfilerSession"] = None
_active_lock = threading.Lock()


class ProfilerSession:
    def __init__(self, builtins: bool = False):
        self.builtins = builtins
        self._connected = False
        self._profiler: Optional[CpuProfiler] = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def enabled(self) -> bool:
        return self._profiler is not None

    def connect(self) -> None:
        global _active_session

        with _active_lock:
            if self._connected:
                raise ProfilerSessionError("Session is already connected")
            if _active_session is not None:
                raise ProfilerSessionError(
                    "Another profiler session is already connected"
                )
            _active_session = self
            self._connected = True
        logger.debug("Profiler session connected")

    def enable(self) -> None:
        self._require_connected()
        if self._profiler is None:
            self._profiler = CpuProfiler(self.builtins)

    def disable(self) -> None:
        self._require_connected()
        if self._profiler is not None:
            self._profiler.discard()
        self._profiler = None

    def start(self) -> None:
        self._require_connected()
        if self._profiler is None:
            raise ProfilerSessionError("Profiler is not enabled")
        self._profiler.start()

    def stop(self) -> Dict[str, Any]:
        """Stop profiling and return the profile collected since start()."""
        self._require_connected()
        if self._profiler is None:
            raise ProfilerSessionError("Profiler is not enabled")
        return self._profiler.stop()

    def disconnect(self) -> None:
        """Release the session. A profile still being collected is discarded."""
        global _active_session

        if not self._connected:
            return
        if self._profiler is not None:
            self._profiler.discard()
        self._profiler = None

        with _active_lock:
            if _active_session is self:
                _active_session = None
            self._connected = False
        logger.debug("Profiler session disconnected")

    def _require_connected(self) -> None:
        if not self._connected:
            raise ProfilerSessionError("Session is not connected")

    def __enter__(self) -> "ProfilerSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()
