# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""
Time-boxed CPU profile capture.

capture_profile() starts the profiler immediately and returns; a timer stops
it after PROFILE_DURATION_SECONDS, writes the profile as JSON to
PROFILE_OUTPUT_PATH (overwriting any previous file) and closes the session.
The timer thread is not a daemon, so the interpreter stays alive until the
profile has been written. With exit_on_error a failure to stop or write the
profile is logged and ends the process with status 1.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from otel_bootstrap.profiling.session import ProfilerSession

logger = logging.getLogger(__name__)

PROFILE_DURATION_SECONDS = 10.0
PROFILE_OUTPUT_PATH = "./profile.cpuprofile"


def write_profile(profile: Dict[str, Any], output_path: Union[str, Path]) -> Path:
    """
    Serialize a profile to JSON and write it in one go.

    Args:
        profile: Profile object returned by the session
        output_path: Destination file, overwritten if present

    Returns:
        Path: The written file
    """
    path = Path(output_path)
    path.write_text(json.dumps(profile), encoding="utf-8")
    return path


class ProfileCapture:
    """One scheduled profile capture."""

    def __init__(
        self,
        session: ProfilerSession,
        output_path: Union[str, Path] = PROFILE_OUTPUT_PATH,
        duration: float = PROFILE_DURATION_SECONDS,
        exit_on_error: bool = False,
    ):
        self.session = session
        self.output_path = output_path
        self.duration = duration
        self.exit_on_error = exit_on_error
        self.written_path: Optional[Path] = None
        self.error: Optional[Exception] = None
        self.timer = threading.Timer(duration, self._finish)

    def start(self) -> "ProfileCapture":
        self.session.connect()
        self.session.enable()
        self.session.start()
        self.timer.start()
        logger.info(
            f"CPU profiling started for {self.duration:g}s, output: {self.output_path}"
        )
        return self

    def _finish(self) -> None:
        try:
            profile = self.session.stop()
            self.written_path = write_profile(profile, self.output_path)
        except Exception as e:
            self.error = e
            if self.exit_on_error:
                logger.exception(f"CPU profile capture failed: {e}")
                os._exit(1)
            raise

        self.session.disconnect()
        logger.info(f"CPU profile written to {self.written_path}")

    def wait(self, timeout: Optional[float] = None) -> Optional[Path]:
        """
        Block until the profile has been written.

        Returns:
            Path: The written file, or None if the timeout expired first

        Raises:
            Exception: Whatever failed while stopping or writing the profile
        """
        self.timer.join(timeout)
        if self.error is not None:
            raise self.error
        return self.written_path


def capture_profile(
    output_path: Union[str, Path] = PROFILE_OUTPUT_PATH,
    duration: float = PROFILE_DURATION_SECONDS,
    session: Optional[ProfilerSession] = None,
    exit_on_error: bool = False,
) -> ProfileCapture:
    """
    Profile the process for a fixed window and write the result to disk.

    Args:
        output_path: Destination file (default: ./profile.cpuprofile)
        duration: Profiling window in seconds (default: 10)
        session: Session to use, a new one by default
        exit_on_error: End the process with status 1 if the capture fails

    Returns:
        ProfileCapture: The running capture; call wait() to block until done
    """
    if session is None:
        session = ProfilerSession()
    return ProfileCapture(session, output_path, duration, exit_on_error).start()
