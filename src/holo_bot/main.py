#!/usr/bin/env python3
"""Command line entry point for HoloBot.

``holo-bot`` loads settings from the environment (optionally from an explicit
``.env`` file), configures logging and runs the bot until it is interrupted.
``holo-bot --check-config`` validates the configuration and exits.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from holo_bot.domain.shared.messages import ErrorMessages, LogTemplates
from holo_bot.utils.logging import setup_logging

if TYPE_CHECKING:
    from holo_bot.config.settings import Settings

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="holo-bot", description="Run the HoloBot music bot.")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Read settings from this file instead of ./.env",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Override LOG_LEVEL from the environment",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration and exit without connecting",
    )
    return parser.parse_args(argv)


def load_settings(env_file: Path | None = None) -> Settings:
    from holo_bot.config.settings import Settings, get_settings

    if env_file is None:
        return get_settings()
    return Settings(_env_file=env_file)


def run(settings: Settings, token: str) -> int:
    """Build the container and bot, then block until the bot stops."""
    from holo_bot.config.container import create_container
    from holo_bot.infrastructure.discord.bot import create_bot

    logger.info(LogTemplates.BOT_STARTING.format(environment=settings.environment))
    bot = create_bot(create_container(settings), settings)

    try:
        logger.info(LogTemplates.BOT_STARTING_RUN)
        bot.run_with_graceful_shutdown(token)
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1

    logger.info(LogTemplates.BOT_STOPPED)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings(args.env_file)
    except ValidationError as e:
        setup_logging(args.log_level or "INFO")
        logger.error(LogTemplates.CONFIG_INVALID, e)
        return 2

    setup_logging(args.log_level or settings.log_level)

    token = settings.discord.token.get_secret_value()
    if not token:
        logger.error(ErrorMessages.DISCORD_TOKEN_REQUIRED)
        return 1

    if args.check_config:
        logger.info(
            LogTemplates.CONFIG_CHECKED, settings.environment, settings.music.max_queue_length
        )
        return 0

    return run(settings, token)


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
