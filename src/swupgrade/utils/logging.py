"""Rotating logger setup for the upgrade service."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

ROOT_LOGGER = "swupgrade"

# Per-request INFO lines from the HTTP client; one per poll at 100 ms
CHATTY_LOGGERS = ("httpx", "httpcore")


def resolve_level(level: Union[int, str]) -> int:
    """Turn a level name such as "DEBUG" (or a number) into a logging level.

    Raises:
        ValueError: If the name is not a known logging level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logger(
    name: str = ROOT_LOGGER,
    log_file: str = "./logs/upgrader.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """Setup rotating file logger with ISO 8601 timestamps.

    Component loggers (swupgrade.workflow, swupgrade.poller, ...) propagate
    to the logger configured here. Below DEBUG the HTTP client loggers are
    raised to WARNING so register polls do not flood the log file.

    Args:
        name: Logger name
        log_file: Path to log file (created if doesn't exist)
        max_bytes: Max size before rotation (default 10MB)
        backup_count: Number of rotated files to keep (default 3)
        level: Logging level, number or name ("INFO", "DEBUG", ...)

    Returns:
        Configured logger instance
    """
    level = resolve_level(level)
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for chatty in CHATTY_LOGGERS:
        logging.getLogger(chatty).setLevel(http_level)

    # Avoid duplicate handlers if already configured
    if logger.handlers:
        return logger

    file_handler = RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
