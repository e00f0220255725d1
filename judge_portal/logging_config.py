"""
Logging configuration for the judge portal.

One loguru pipeline for the CLI and the HTTP workers: a readable stderr sink
tagged with the component name, and a daily JSON-lines file that keeps every
finalization, refusal and upstream failure of an event day.
"""

import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]: <18}</cyan> | {thread.name} - <level>{message}</level>"
)


def setup_logging(level: str = "INFO", debug: bool = False, log_file: str | None = "judge_portal.log") -> None:
    """
    Configure loguru logging.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, log DEBUG everywhere and include variable values in tracebacks
        log_file: Path of the JSON-lines log file, or None to log to stderr only
    """
    logger.remove()
    logger.configure(extra={"component": "judge_portal"})

    console_level = "DEBUG" if debug else level
    logger.add(
        sys.stderr,
        level=console_level,
        format=CONSOLE_FORMAT,
        backtrace=debug,
        diagnose=debug,
    )

    if log_file is None:
        return

    # Requests log from worker threads; enqueue keeps file writes ordered
    logger.add(
        log_file,
        level="DEBUG" if debug else "INFO",
        serialize=True,
        enqueue=True,
        rotation="00:00",
        retention="30 days",
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger bound to a component name.

    Args:
        name: Component shown in the console and stored in each JSON record

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(component=name)
    return logger
