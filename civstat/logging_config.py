"""
Session logging configuration.

The shell records what happened in a session (arguments, files, user input)
through one explicit logger created at startup and passed to whoever needs
it. Each line is `<epoch milliseconds> <message>`.

The analytics core never logs.
"""

import logging
import sys
from typing import Optional

SESSION_LOGGER = "civstat.session"


class EpochMillisFormatter(logging.Formatter):
    """Prefix each message with the event time in epoch milliseconds."""

    def format(self, record: logging.LogRecord) -> str:
        return f"{int(record.created * 1000)} {record.getMessage()}"


def setup_logging(log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """
    Create the session logger.

    Args:
        log_file: File to append to. When None, log lines go to stderr.
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The configured logger.

    Raises:
        OSError: the log file cannot be opened for appending.
    """
    logger = logging.getLogger(SESSION_LOGGER)
    close_logging(logger)

    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(EpochMillisFormatter())

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def close_logging(logger: logging.Logger) -> None:
    """Flush, close and detach every handler of `logger`."""
    for handler in logger.handlers[:]:
        handler.flush()
        handler.close()
        logger.removeHandler(handler)
