# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

"""
Logging configuration for the stablepack CLI.

A rich console sink for the user and a rotating debug file sink for
troubleshooting builds after the fact.
"""

import os
from datetime import datetime
from pathlib import Path

from loguru import logger
from platformdirs import user_log_path
from rich.console import Console


def get_log_directory() -> Path:
    """Get the directory where log files are stored."""
    log_dir = user_log_path(appname="stablepack")
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


class StructuredLogger:
    """Structured logging helper for consistent log formatting."""

    def __init__(self, command_name: str, silent: bool = False):
        self.command_name = command_name
        self.silent = silent
        self.console = Console(stderr=True)
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Set up loguru with proper formatting and sinks."""
        # Clear existing sinks to avoid duplicates
        logger.remove()

        log_level = os.getenv("STABLEPACK_LOG_LEVEL", "INFO").upper()
        console_level = os.getenv("STABLEPACK_CONSOLE_LOG_LEVEL", log_level).upper()

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        logfile = get_log_directory() / f"stablepack_{timestamp}.log"

        def console_sink(message):
            text = message.record["message"].rstrip("\n")
            self.console.print(text)

        if not self.silent:
            logger.add(
                console_sink, level=console_level, format="{message}", catch=True
            )
        else:
            # errors still reach the user when silent
            logger.add(console_sink, level="ERROR", format="{message}", catch=True)

        logger.add(
            logfile,
            level="DEBUG",
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>",
            rotation="10 MB",
            retention="14 days",
            compression="gz",
            catch=True,
            backtrace=True,
            diagnose=False,
        )

        logger.bind(
            command=self.command_name, logfile=str(logfile), log_level=log_level
        ).debug("Logger initialized")

        self.logfile = logfile

    def get_logfile(self) -> Path:
        """Get the current log file path."""
        return self.logfile


def setup_logger(command_name: str, debug: bool = False, silent: bool = False) -> Path:
    """
    Set up logging for a command.

    Args:
        command_name: Name of the command being executed
        debug: Enable debug logging on the console
        silent: Only show errors on the console

    Returns:
        Path to the log file
    """
    if debug:
        os.environ["STABLEPACK_LOG_LEVEL"] = "DEBUG"
        os.environ["STABLEPACK_CONSOLE_LOG_LEVEL"] = "DEBUG"

    structured_logger = StructuredLogger(command_name, silent=silent)
    return structured_logger.get_logfile()
