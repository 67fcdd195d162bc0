# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

import logging
import sys

import pytest

from otel_bootstrap.core.logging import setup_logging


@pytest.mark.unit
class TestSetupLogging:
    def test_single_stdout_handler(self, restore_root_logger):
        setup_logging()

        assert restore_root_logger.level == logging.INFO
        assert len(restore_root_logger.handlers) == 1
        handler = restore_root_logger.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stdout

    def test_format_includes_process_id(self, restore_root_logger):
        setup_logging(logging.DEBUG)

        handler = restore_root_logger.handlers[0]
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
        line = handler.format(record)

        assert f"[{record.process}]" in line
        assert line.endswith(": hello")
        assert restore_root_logger.level == logging.DEBUG
