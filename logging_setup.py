# Author: easyble contributors

"""
Logging configuration for easyble host applications.

The library modules only create loggers through get_logger(); handlers
and levels are installed by the host (or the HTTP bridge) via
setup_logging().
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    verbose: bool = False,
    console_output: bool = True,
    log_file: str | None = None,
    simple_format: bool = False,
    level: str | None = None,
) -> None:
    """
    Configure the root logger.

    Args:
        verbose: Enable DEBUG level logging (default: INFO)
        console_output: Output to stdout (default: True)
        log_file: Optional file path for log output
        simple_format: Print bare messages, like a console tool
        level: Explicit level name, overrides verbose (e.g. "WARNING")
    """
    if level:
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
    else:
        log_level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    fmt = LOG_FORMAT_SIMPLE if simple_format else LOG_FORMAT

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from logging_setup import get_logger
        logger = get_logger(__name__)
        logger.info("[BLE] Got device %s", name)
    """
    return logging.getLogger(name)
