"""Tests for logging color output."""
from __future__ import annotations

import logging
import os
from unittest.mock import patch

from cartesia_gateway.core.logging.formatters import (
    ColoredConsoleFormatter,
    Colors,
    get_tag_color,
    supports_color,
)


def _record(msg="upstream_ok", **extra):
    record = logging.LogRecord("cartesia-gateway.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestColorSupport:
    def test_custom_env_disables_colors(self):
        with patch.dict(os.environ, {"CARTESIA_GW_NO_COLOR": "1"}):
            assert supports_color() is False

    def test_no_color_standard_env(self):
        env = {k: v for k, v in os.environ.items() if k != "CARTESIA_GW_NO_COLOR"}
        env["NO_COLOR"] = "1"
        with patch.dict(os.environ, env, clear=True):
            assert supports_color() is False


class TestTagColors:
    def test_known_tags(self):
        assert get_tag_color("SUCCESS") == Colors.BRIGHT_GREEN
        assert get_tag_color("fail") == Colors.BRIGHT_RED
        assert get_tag_color("WARN") == Colors.BRIGHT_YELLOW

    def test_unknown_tag(self):
        assert get_tag_color("CUSTOM") == Colors.WHITE


class TestConsoleFormatter:
    def test_plain_output(self):
        fmt = ColoredConsoleFormatter(use_colors=False)
        line = fmt.format(_record(tag="SUCCESS", request_id="abc123", seconds=0.412,
                                  extra_data={"status": 200}))
        assert "\033[" not in line
        assert "(abc123)" in line
        assert "upstream_ok" in line
        assert "0.412s" in line
        assert "status=200" in line

    def test_no_request_id_placeholder(self):
        line = ColoredConsoleFormatter(use_colors=False).format(_record(request_id="-"))
        assert "(-)" not in line

    def test_colored_output(self):
        fmt = ColoredConsoleFormatter(use_colors=True)
        line = fmt.format(_record(tag="FAIL", seconds=3.0))
        assert Colors.BRIGHT_RED in line
        assert Colors.RED + "3.000s" in line
        assert Colors.RESET in line

    def test_timing_colors(self):
        fmt = ColoredConsoleFormatter(use_colors=True)
        assert Colors.GREEN + "0.100s" in fmt.format(_record(seconds=0.1))
        assert Colors.YELLOW + "1.000s" in fmt.format(_record(seconds=1.0))

    def test_status_field_colors(self):
        fmt = ColoredConsoleFormatter(use_colors=True)
        assert Colors.RED + "upstream_status=503" in fmt.format(_record(extra_data={"upstream_status": 503}))
        assert Colors.YELLOW + "status=404" in fmt.format(_record(extra_data={"status": 404}))
        assert Colors.YELLOW + "attempt=2" in fmt.format(_record(extra_data={"attempt": 2}))
