"""Console logging setup and the colored formatter it installs."""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from pathlib import Path

LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[3] / "logging_config.json"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_PACKAGE_PREFIX = "holo_bot."


class ColoredFormatter(logging.Formatter):
    """Logging formatter that colors the level name and shortens package logger names.

    ``holo_bot.application.services.buffered_queue`` is rendered as
    ``application.services.buffered_queue``. Colors are disabled when the
    ``NO_COLOR`` environment variable is set or when the output stream is not
    a TTY (e.g. redirected to a file).
    """

    COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",     # cyan
        logging.INFO: "\033[32m",      # green
        logging.WARNING: "\033[33m",   # yellow
        logging.ERROR: "\033[31m",     # red
        logging.CRITICAL: "\033[1;31m",  # bold red
    }
    RESET = "\033[0m"

    def _use_color(self) -> bool:
        if os.environ.get("NO_COLOR") is not None:
            return False
        stream = getattr(self, "_stream", None) or sys.stdout
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        use_color = self._use_color()
        short_name = record.name.startswith(_PACKAGE_PREFIX)
        if use_color or short_name:
            # Never mutate the shared record; other handlers format it too.
            record = logging.makeLogRecord(record.__dict__)
        if short_name:
            record.name = record.name.removeprefix(_PACKAGE_PREFIX)
        if use_color:
            color = self.COLORS.get(record.levelno, "")
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(log_level: str = "INFO", config_path: Path = LOGGING_CONFIG_PATH) -> None:
    """Configure logging from ``logging_config.json``, falling back to a colored console handler."""
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(config_path) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
        logging.basicConfig(level=resolved_level, handlers=[handler], force=True)
        logging.getLogger(__name__).warning(
            "Could not load %s, falling back to basic config", config_path
        )

    logging.getLogger().setLevel(resolved_level)
