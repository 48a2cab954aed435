"""
Logging setup for the delegation tooling.

One package logger (``eoa_delegate``) gets the handlers; modules log through
``logging.getLogger(__name__)`` and propagate to it.

Handlers:
- console (stdout)
- ``<name>.log``, rotated at midnight, 30 days kept
- ``<name>_errors.log``, ERROR and above, size capped
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Optional


DEFAULT_LOG_DIR = Path.cwd() / "logs"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s - %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ERROR_LOG_MAX_BYTES = 10 * 1024 * 1024
ERROR_LOG_BACKUPS = 5
DAILY_LOG_BACKUPS = 30


def get_log_dir() -> Path:
    """LOG_DIR, or ./logs; created on first use."""
    log_dir = Path(os.getenv("LOG_DIR") or DEFAULT_LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def level_from_env(default: int = logging.INFO) -> int:
    value = os.getenv("LOG_LEVEL")
    if not value:
        return default
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def _file_handlers(name: str, log_file: str, level: int, formatter: logging.Formatter) -> list[logging.Handler]:
    log_dir = get_log_dir()

    daily = TimedRotatingFileHandler(
        log_dir / log_file,
        when="midnight",
        backupCount=DAILY_LOG_BACKUPS,
        encoding="utf-8",
    )
    daily.setLevel(level)
    daily.setFormatter(formatter)

    errors = RotatingFileHandler(
        log_dir / f"{name}_errors.log",
        maxBytes=ERROR_LOG_MAX_BYTES,
        backupCount=ERROR_LOG_BACKUPS,
        encoding="utf-8",
    )
    errors.setLevel(logging.ERROR)
    errors.setFormatter(logging.Formatter(DEBUG_FORMAT, datefmt=DATE_FORMAT))

    return [daily, errors]


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
    detailed: bool = False,
    to_file: bool = True,
) -> logging.Logger:
    """
    Attach console and file handlers to logger ``name``.

    Calling it again for a logger that already has handlers only updates
    the level.

    Args:
        name: Logger name
        level: Threshold for the logger and its handlers
        log_file: File name inside the log directory (default ``<name>.log``)
        console: Log to stdout
        detailed: Include source file and line in every line
        to_file: Attach the rotating file handlers

    Example:
        >>> logger = setup_logger("eoa_delegate", level=logging.DEBUG)
        >>> logger.info("Submitting delegation")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    if console:
        stream = logging.StreamHandler(sys.stdout)
        stream.setLevel(level)
        stream.setFormatter(logging.Formatter(DEBUG_FORMAT if detailed else CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(stream)

    if to_file:
        formatter = logging.Formatter(DEBUG_FORMAT if detailed else FILE_FORMAT, datefmt=DATE_FORMAT)
        for handler in _file_handlers(name, log_file or f"{name}.log", level, formatter):
            logger.addHandler(handler)

    return logger


def log_transaction(
    logger: logging.Logger,
    action: str,
    tx_hash: Optional[str],
    gas_used: Optional[int] = None,
    success: bool = True,
    **details,
):
    """
    One pipe-separated line per transaction, e.g.::

        SUCCESS | DELEGATE | eoa: 0x.. | Gas: 46,000 | TX: 0x..

    Failures are logged at ERROR so they also reach the error log.
    """
    parts = ["SUCCESS" if success else "FAILED", action]
    parts += [f"{key}: {value}" for key, value in details.items()]
    if gas_used is not None:
        parts.append(f"Gas: {gas_used:,}")
    if tx_hash:
        parts.append(f"TX: {tx_hash}")

    logger.log(logging.INFO if success else logging.ERROR, " | ".join(parts))


def get_cli_logger(verbose: bool = False, to_file: bool = True) -> logging.Logger:
    """Configure the package logger for a CLI run (``-v`` forces DEBUG)."""
    level = logging.DEBUG if verbose else level_from_env()
    return setup_logger("eoa_delegate", level=level, detailed=verbose, to_file=to_file)
