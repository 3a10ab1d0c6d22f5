"""
Loguru configuration for the server.

This module configures loguru with:
- Automatic Trace ID in each log
- Human-readable or JSON (serialized) output
- Debug level switch
- Redirection of standard library logs to loguru
"""

import logging
import sys
from typing import Any

from loguru import logger

from scepserver.core.trace_context import trace_id_context

__all__ = [
    "logger",
    "InterceptHandler",
    "add_trace_id",
    "configure_logger",
    "intercept_standard_logging",
]

DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | trace_id={extra[trace_id]} | "
    "{name}:{function}:{line} - {message}"
)


def add_trace_id(record: dict[str, Any]) -> bool:
    """
    Adds the trace_id to the log record.

    The trace_id is obtained from the current request context,
    allowing tracking of logs from the same request.

    Args:
        record: Loguru record

    Returns:
        True to indicate that the filter passed
    """
    trace_id = trace_id_context.get()
    record["extra"]["trace_id"] = trace_id if trace_id else "N/A"
    return True


def configure_logger(
    debug: bool = False,
    json_output: bool = False,
    log_format: str = DEFAULT_LOG_FORMAT,
    enqueue: bool = False,
    sink: Any = None,
) -> None:
    """
    Configures loguru for the server process.

    This function:
    1. Removes default loguru handlers
    2. Adds a single handler to the given sink
    3. Filters out DEBUG records unless debug is enabled

    Args:
        debug: Enable DEBUG level records
        json_output: Serialize every record as a JSON line
        log_format: Format used for human-readable output
        enqueue: Enqueue logs using multiprocessing
        sink: Destination of log records (stderr by default)
    """
    if sink is None:
        sink = sys.stderr

    logger.remove()

    logger.add(
        sink=sink,
        level="DEBUG" if debug else "INFO",
        format=log_format,
        filter=add_trace_id,
        colorize=False if json_output else None,
        serialize=json_output,
        backtrace=debug,
        diagnose=debug,
        enqueue=enqueue,
    )


class InterceptHandler(logging.Handler):
    """
    Handler to redirect standard logging logs to loguru.

    This allows capturing logs from libraries that use standard logging
    (like uvicorn) and process them with loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """
        Redirects a standard logging record to loguru.

        Args:
            record: logging.LogRecord record
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        loguru_logger = logger.opt(depth=6, exception=record.exc_info)
        loguru_logger.log(level, record.getMessage())


def intercept_standard_logging() -> None:
    """
    Configures redirection of standard logging to loguru.

    Intercepts logs from uvicorn (server, access and error loggers) and
    fastapi. Call this once the loguru sink has been configured.
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)

    for logger_name in [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "fastapi",
    ]:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False
