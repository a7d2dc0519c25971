"""Logging setup for the Sea Lion gateway, driven by AppConfig."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import colorlog

from config import AppConfig

LOGGER_NAME = "sealion_gateway"

LEVEL_DISABLE = "DISABLE"

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
COLOR_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s - %(message)s"
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

# Rotation: 1 MB per file, 3 backups.
ROTATE_MAX_BYTES = 1_048_576
ROTATE_BACKUPS = 3


def setup_logging(config: AppConfig) -> logging.Logger:
    """
    Configure the gateway logger from `config`.

    Uses config.log_level (DISABLE turns logging off), config.log_path for the
    rotating log file and config.log_color for the colorlog formatter. When the
    log file cannot be opened, records go to stderr instead.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = False

    if config.log_level == LEVEL_DISABLE:
        logging.disable(logging.CRITICAL)
        logger.addHandler(logging.NullHandler())
        return logger

    logging.disable(logging.NOTSET)
    level = logging.getLevelName(config.log_level) if config.log_level in LEVEL_COLORS else logging.INFO
    logger.setLevel(level)

    handler: logging.Handler
    open_error: OSError | None = None
    try:
        handler = RotatingFileHandler(
            config.log_path,
            maxBytes=ROTATE_MAX_BYTES,
            backupCount=ROTATE_BACKUPS,
            encoding="utf-8",
        )
    except OSError as e:
        handler, open_error = logging.StreamHandler(), e

    handler.setFormatter(build_formatter(color=config.log_color))
    logger.addHandler(handler)

    if open_error is not None:
        logger.warning("Cannot write log file %r (%s); logging to stderr", config.log_path, open_error)
    return logger


def build_formatter(*, color: bool) -> logging.Formatter:
    if not color:
        return logging.Formatter(PLAIN_FORMAT)
    return colorlog.ColoredFormatter(COLOR_FORMAT, reset=True, log_colors=LEVEL_COLORS)


def mask_secret(s: str, keep_start: int = 6, keep_end: int = 4) -> str:
    """Keep the first and last few characters of a secret, hide the rest."""
    s = (s or "").strip()
    if not s:
        return ""
    if len(s) <= keep_start + keep_end:
        return "*" * len(s)
    return f"{s[:keep_start]}...{s[-keep_end:]}"
