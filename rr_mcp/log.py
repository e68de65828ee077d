import logging
import sys
from contextlib import contextmanager
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

from rr_mcp import config

LOGGER_NAME = "rr_mcp"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _open_file_handler(directory: Path, formatter: logging.Formatter) -> logging.Handler:
    directory.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        directory / config.LOG_FILE_NAME,
        when="midnight",
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(logging.WARNING)
    handler.setFormatter(formatter)
    return handler


@contextmanager
def error_log(directory: Optional[Path] = None, stream=None) -> Iterator[logging.Logger]:
    """Attach the day-rotated error log file to the package logger.

    stdout carries the protocol, so console output goes to stderr. If the log
    directory cannot be set up, the failure is reported there at CRITICAL and
    re-raised. Both handlers are flushed and closed when the block exits.
    """
    directory = Path(directory) if directory is not None else config.log_dir()
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    previous_level = logger.level
    logger.setLevel(logging.INFO)
    logger.addHandler(stream_handler)
    handlers = [stream_handler]
    try:
        try:
            handlers.append(_open_file_handler(directory, formatter))
        except OSError:
            logger.critical("Fatal error in MCP server: cannot open error log in %s", directory, exc_info=True)
            raise
        logger.addHandler(handlers[-1])
        yield logger
    finally:
        for handler in handlers:
            handler.flush()
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(previous_level)
