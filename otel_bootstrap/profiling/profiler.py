# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
CPU profiler backed by yappi.

yappi hooks every thread of the interpreter and measures CPU time per
function. stop() turns its function and thread statistics into a plain
JSON-serializable dict:

    {
      "clockType": "cpu",
      "startTime": <epoch microseconds>,
      "endTime": <epoch microseconds>,
      "functions": [
        {"id", "name", "module", "lineNumber", "builtin", "callCount",
         "primitiveCallCount", "totalTime", "selfTime",
         "children": [{"id", "callCount", "totalTime", "selfTime"}]}
      ],
      "threads": [{"id", "name", "nativeId", "totalTime", "scheduleCount"}]
    }

Times inside functions and threads are CPU seconds. yappi keeps one set of
statistics per interpreter, so only one profiler can run at a time.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import yappi

from otel_bootstrap.core.exceptions import ProfilerSessionError

logger = logging.getLogger(__name__)

CLOCK_TYPE = "cpu"


def _now_us() -> int:
    return time.time_ns() // 1000


def _function_entry(stat) -> Dict[str, Any]:
    return {
        "id": stat.index,
        "name": stat.name,
        "module": stat.module,
        "lineNumber": stat.lineno,
        "builtin": bool(stat.builtin),
        "callCount": stat.ncall,
        "primitiveCallCount": stat.nactualcall,
        "totalTime": stat.ttot,
        "selfTime": stat.tsub,
        "children": [
            {
                "id": child.index,
                "callCount": child.ncall,
                "totalTime": child.ttot,
                "selfTime": child.tsub,
            }
            for child in stat.children
        ],
    }


def _thread_entry(stat) -> Dict[str, Any]:
    return {
        "id": stat.id,
        "name": stat.name,
        "nativeId": stat.tid,
        "totalTime": stat.ttot,
        "scheduleCount": stat.sched_count,
    }


class CpuProfiler:
    """Start/stop wrapper around the process-wide yappi profiler."""

    def __init__(self, builtins: bool = False):
        self.builtins = builtins
        self._start_time: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._start_time is not None and yappi.is_running()

    def start(self) -> None:
        if yappi.is_running():
            raise ProfilerSessionError("Profiler is already running")

        yappi.clear_stats()
        yappi.set_clock_type(CLOCK_TYPE)
        self._start_time = _now_us()
        yappi.start(builtins=self.builtins, profile_threads=True)
        logger.debug(f"yappi started with {CLOCK_TYPE} clock")

    def stop(self) -> Dict[str, Any]:
        """Stop profiling and return the collected profile."""
        if not self.running:
            raise ProfilerSessionError("Profiler is not running")

        yappi.stop()
        end_time = _now_us()
        try:
            functions: List[Dict[str, Any]] = [
                _function_entry(stat) for stat in yappi.get_func_stats()
            ]
            threads = [_thread_entry(stat) for stat in yappi.get_thread_stats()]
        finally:
            yappi.clear_stats()

        profile = {
            "clockType": CLOCK_TYPE,
            "startTime": self._start_time,
            "endTime": end_time,
            "functions": functions,
            "threads": threads,
        }
        self._start_time = None
        return profile

    def discard(self) -> None:
        """Stop profiling without collecting anything."""
        if self._start_time is None:
            return
        if yappi.is_running():
            yappi.stop()
        yappi.clear_stats()
        self._start_time = None
