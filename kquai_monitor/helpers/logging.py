"""Logger module."""

import logging
import sys
from typing import TextIO

import colorlog

loggers: dict[str, logging.Logger] = {}

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def _stream(log_handler: str) -> TextIO:
    if log_handler == "stdout":
        return sys.stdout
    if log_handler == "stderr":
        return sys.stderr
    err_msg = f"Invalid handler: {log_handler}"
    raise ValueError(err_msg)


def _level(log_level: str) -> int:
    if log_level not in LOG_LEVELS:
        err_msg = f"Invalid log level: {log_level}"
        raise ValueError(err_msg)
    return LOG_LEVELS[log_level]


def _build_handler(log_handler: str, log_color: bool) -> logging.Handler:
    stream = _stream(log_handler)
    if log_color:
        handler: logging.Handler = colorlog.StreamHandler(stream)
        handler.setFormatter(
            colorlog.ColoredFormatter(f"%(log_color)s {LOG_FORMAT}", log_colors=LOG_COLORS)
        )
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def get_logger(
    name: str,
    log_handler: str = "stdout",
    log_level: str = "INFO",
    log_color: bool = False,
) -> logging.Logger:
    """Get logger.

    Loggers are cached per name; later calls return the first instance
    unchanged. Use set_log_level to change levels afterwards.

    Args:
        name: The name of the logger.
        log_handler: The log handler type ('stdout' or 'stderr').
        log_level: The logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL').
        log_color: Whether to use colored output.

    Returns:
        logging.Logger: Configured logger instance.

    Raises:
        ValueError: If invalid handler or log level is provided.
    """
    if name in loggers:
        return loggers[name]

    level = _level(log_level)
    handler = _build_handler(log_handler, log_color)
    handler.setLevel(level)

    logger = colorlog.getLogger(name) if log_color else logging.getLogger(name)
    logger.setLevel(level)
    logger.addHandler(handler)

    loggers[name] = logger
    return logger


def set_log_level(log_level: str) -> None:
    """Apply a log level to every logger created through get_logger.

    Args:
        log_level: The logging level name.

    Raises:
        ValueError: If the level name is unknown.
    """
    level = _level(log_level)
    for logger in loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


__all__ = ["LOG_LEVELS", "get_logger", "set_log_level"]
