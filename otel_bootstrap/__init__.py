# SPDX-FileCopyrightText: 2025 Weibo, Inc.
#
# SPDX-License-Identifier: Apache-2.0

"""Process-start bootstrap for OpenTelemetry export and CPU profile capture."""

__version__ = "1.0.0"
