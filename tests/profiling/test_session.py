# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

import pytest
import yappi

from otel_bootstrap.core.exceptions import ProfilerSessionError
from otel_bootstrap.profiling.session import ProfilerSession


@pytest.mark.unit
class TestProfilerSession:
    """Test the session protocol"""

    def test_full_protocol(self):
        session = ProfilerSession()

        session.connect()
        session.enable()
        session.start()
        profile = session.stop()
        session.disconnect()

        assert profile["clockType"] == "cpu"
        assert session.connected is False

    def test_only_one_session_per_process(self):
        first = ProfilerSession()
        first.connect()

        with pytest.raises(ProfilerSessionError, match="already connected"):
            ProfilerSession().connect()

        first.disconnect()
        second = ProfilerSession()
        second.connect()
        assert second.connected is True

    def test_connect_twice_raises(self):
        session = ProfilerSession()
        session.connect()

        with pytest.raises(ProfilerSessionError):
            session.connect()

    @pytest.mark.parametrize("operation", ["enable", "start", "stop", "disable"])
    def test_operations_require_connection(self, operation):
        session = ProfilerSession()

        with pytest.raises(ProfilerSessionError, match="not connected"):
            getattr(session, operation)()

    def test_start_before_enable_raises(self):
        session = ProfilerSession()
        session.connect()

        with pytest.raises(ProfilerSessionError, match="not enabled"):
            session.start()

    def test_stop_before_start_raises(self):
        session = ProfilerSession()
        session.connect()
        session.enable()

        with pytest.raises(ProfilerSessionError, match="not running"):
            session.stop()

    def test_disconnect_discards_running_profile(self):
        session = ProfilerSession()
        session.connect()
        session.enable()
        session.start()

        session.disconnect()

        assert session.connected is False
        assert session.enabled is False
        assert yappi.is_running() is False

    def test_disconnect_is_idempotent(self):
        session = ProfilerSession()
        session.disconnect()
        session.connect()
        session.disconnect()
        session.disconnect()

        assert session.connected is False

    def test_context_manager_releases_session(self):
        with ProfilerSession() as session:
            assert session.connected is True

        assert session.connected is False
        ProfilerSession().connect()
