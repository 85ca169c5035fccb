"""Tests for ColoredFormatter and setup_logging."""

import json
import logging
from io import StringIO
from unittest.mock import patch

import pytest

from holo_bot.utils.logging import LOGGING_CONFIG_PATH, ColoredFormatter, setup_logging

RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


def _make_record(level: int, message: str = "test") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestColoredFormatter:
    """Tests for ANSI color formatting."""

    def _tty_formatter(self) -> ColoredFormatter:
        fmt = ColoredFormatter("%(levelname)s | %(message)s")
        # Simulate a TTY stream
        stream = StringIO()
        stream.isatty = lambda: True  # type: ignore[attr-defined]
        fmt._stream = stream  # type: ignore[attr-defined]
        return fmt

    @pytest.mark.parametrize(
        "level",
        [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL],
    )
    def test_color_applied_per_level(self, level: int):
        """Should apply the correct ANSI color code for each level."""
        fmt = self._tty_formatter()
        record = _make_record(level)
        output = fmt.format(record)

        color = LEVEL_COLORS[level]
        assert color in output
        assert RESET in output

    def test_no_color_when_no_color_env_set(self):
        """Should not apply colors when NO_COLOR env var is set."""
        fmt = self._tty_formatter()
        record = _make_record(logging.INFO)

        with patch.dict("os.environ", {"NO_COLOR": "1"}):
            output = fmt.format(record)

        assert "\033[" not in output

    def test_no_color_when_stream_not_tty(self):
        """Should not apply colors when stream is not a TTY."""
        fmt = ColoredFormatter("%(levelname)s | %(message)s")
        # StringIO.isatty() returns False by default
        fmt._stream = StringIO()  # type: ignore[attr-defined]
        record = _make_record(logging.ERROR)
        output = fmt.format(record)

        assert "\033[" not in output

    def test_format_output_matches_pattern(self):
        """Should produce output matching the configured format string."""
        fmt = self._tty_formatter()
        record = _make_record(logging.INFO, "hello world")
        output = fmt.format(record)

        # Strip ANSI codes for content check
        plain = output.replace(LEVEL_COLORS[logging.INFO], "").replace(RESET, "")
        assert "INFO" in plain
        assert "hello world" in plain
        assert "|" in plain

    def test_original_record_not_mutated(self):
        """Should not mutate the original LogRecord."""
        fmt = self._tty_formatter()
        record = _make_record(logging.WARNING)
        original_levelname = record.levelname

        fmt.format(record)

        assert record.levelname == original_levelname

    def test_package_prefix_stripped(self):
        """Should shorten package logger names."""
        fmt = ColoredFormatter("%(name)s | %(message)s")
        fmt._stream = StringIO()  # type: ignore[attr-defined]
        record = _make_record(logging.INFO)
        record.name = "holo_bot.application.services.buffered_queue"

        output = fmt.format(record)

        assert output.startswith("application.services.buffered_queue |")
        assert record.name == "holo_bot.application.services.buffered_queue"

    def test_foreign_logger_name_unchanged(self):
        """Should leave third-party logger names alone."""
        fmt = ColoredFormatter("%(name)s")
        fmt._stream = StringIO()  # type: ignore[attr-defined]
        record = _make_record(logging.INFO)
        record.name = "discord.gateway"

        assert fmt.format(record) == "discord.gateway"


class TestSetupLogging:
    """Tests for loading logging_config.json and the console fallback."""

    @pytest.fixture(autouse=True)
    def restore_root_level(self):
        root = logging.getLogger()
        level = root.level
        yield
        root.setLevel(level)

    def test_shipped_config_loaded(self):
        """Should apply the repository's logging_config.json."""
        with patch("logging.config.dictConfig") as mock_dc:
            setup_logging()

        loaded = mock_dc.call_args.args[0]
        assert loaded == json.loads(LOGGING_CONFIG_PATH.read_text())
        assert loaded["loggers"]["discord.gateway"]["level"] == "WARNING"

    def test_requested_level_wins_over_config(self, tmp_path):
        path = tmp_path / "logging.json"
        path.write_text(json.dumps({"version": 1, "root": {"level": "ERROR"}}))

        with patch("logging.config.dictConfig"):
            setup_logging("debug", config_path=path)

        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.parametrize("contents", [None, "{not json", '{"version": 99}'])
    def test_fallback_to_colored_console(self, tmp_path, contents):
        """Should install a colored console handler if the config is missing or unusable."""
        path = tmp_path / "logging.json"
        if contents is not None:
            path.write_text(contents)

        with patch("logging.basicConfig") as mock_bc:
            setup_logging("WARNING", config_path=path)

        kwargs = mock_bc.call_args.kwargs
        assert kwargs["level"] == logging.WARNING
        assert isinstance(kwargs["handlers"][0].formatter, ColoredFormatter)

    def test_unknown_level_defaults_to_info(self, tmp_path):
        with patch("logging.basicConfig"):
            setup_logging("chatty", config_path=tmp_path / "missing.json")

        assert logging.getLogger().level == logging.INFO
