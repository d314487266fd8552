"""
Logging for the progress tracker: one JSON object per line on stdout.

Loggers are split into channels so entries can be filtered downstream:
- http: request lifecycle and route-level outcomes
- db: student store writes and persistence failures
- codeforces: outbound calls to the Codeforces API
- stats: profile aggregation timings

Every entry carries the id of the request that produced it, taken from
``request_id_var`` which the HTTP middleware sets per request.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGER_PREFIX = "tracker"
CHANNELS = ("http", "db", "codeforces", "stats")


def _channel_of(record: logging.LogRecord) -> str:
    channel = getattr(record, "channel", None)
    if channel:
        return channel
    prefix, _, suffix = record.name.partition(".")
    return suffix if prefix == LOGGER_PREFIX and suffix else "app"


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a record as ``{timestamp, level, message, channel, context, extra}``.

    ``context`` holds identifiers (request_id, student_id, handle) and
    ``extra`` holds measurements (duration_ms, status_code). A traceback,
    when attached, goes under ``exception``.
    """

    def format(self, record: logging.LogRecord) -> str:
        context = {"request_id": request_id_var.get("")}
        context.update(getattr(record, "context", None) or {})
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": _channel_of(record),
            "context": context,
            "extra": getattr(record, "extra_data", None) or {},
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = LOG_LEVEL):
    """Send all logging through a single stdout JSON handler at ``level``."""
    numeric_level = getattr(logging, level, logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        get_logger(channel).setLevel(numeric_level)
    return root_logger


def get_logger(channel: str) -> logging.Logger:
    return logging.getLogger("{}.{}".format(LOGGER_PREFIX, channel))


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None,
                     exc_info: bool = False):
    """
    Log ``message`` on a channel logger with structured fields attached.

    Args:
        logger: Channel logger from get_logger
        level: Level name, e.g. "INFO" or "ERROR"
        message: Human-readable text
        context: Identifiers such as student_id or handle
        extra_data: Measurements such as duration_ms or status_code
        exc_info: Attach the traceback of the exception being handled
    """
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        message,
        exc_info=exc_info,
        extra={
            "context": context or {},
            "extra_data": extra_data or {},
            "channel": logger.name.rpartition(".")[2],
        }
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
