"""Logging configuration for the setup CLI."""

from __future__ import annotations

import logging
import sys
import time

_BANNER_RULE = "*" * 44

_LEVEL_PREFIXES = {
    logging.WARNING: "[WARNING]: ",
    logging.ERROR: "[ERROR]: ",
    logging.CRITICAL: "[ERROR]: ",
}


class SetupFormatter(logging.Formatter):
    """Prefix records with the program name and a severity tag."""

    converter = time.gmtime

    def __init__(self, prog: str, *, timestamps: bool = False) -> None:
        fmt = f"{prog}: %(message)s"
        if timestamps:
            fmt = f"%(asctime)s {fmt}"
        super().__init__(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        prefix = _LEVEL_PREFIXES.get(record.levelno)
        if prefix is None:
            return formatted
        head, sep, message = formatted.partition(": ")
        return f"{head}{sep}{prefix}{message}"


def configure_logging(prog: str, *, verbose: bool = False) -> None:
    """Send log records to stderr, at DEBUG with timestamps when verbose."""

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(SetupFormatter(prog, timestamps=verbose))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[handler],
        force=True,
    )


def log_banner(logger: logging.Logger, message: str) -> None:
    logger.info("")
    logger.info(_BANNER_RULE)
    logger.info("%s", message)
    logger.info(_BANNER_RULE)
