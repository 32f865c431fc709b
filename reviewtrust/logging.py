"""
Logging for ReviewTrust

Everything logs under the "reviewtrust" namespace. Two output shapes:
one JSON object per line for log collectors, or a single readable line
for local runs. REVIEWTRUST_LOG_FORMAT picks the shape ("json" or
"text"), REVIEWTRUST_LOG_LEVEL the threshold. Both are read when
setup_logging() runs, not at import.

Context travels through ``extra=``. Only keys in CONTEXT_FIELDS are
written, so review text and reviewer names never reach the log stream:

    logger = get_logger("analyzer")
    logger.info("Analysis complete", extra={"trust_score": 72, "analysis_mode": "strict"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Optional

NAMESPACE = "reviewtrust"

CONTEXT_FIELDS = frozenset({
    # analysis
    "trust_score", "analysis_mode", "patterns_count", "total_reviews", "place_name",
    # failures
    "error", "error_type",
    # requests
    "method", "path", "status_code", "duration_ms",
})

# Third-party loggers that log every request at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpcore")


def _context(record: logging.LogRecord) -> dict:
    return {
        key: value for key, value in sorted(vars(record).items())
        if key in CONTEXT_FIELDS and value is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record; the timestamp is when the record was made."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Readable single line with context appended as key=value pairs."""

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)s %(name)s | %(message)s",
                         datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in context.items())
        head, sep, trace = line.partition("\n")
        return f"{head} [{pairs}]{sep}{trace}"


def _build_handler(fmt: str, stream: Optional[IO[str]]) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(TextFormatter() if fmt == "text" else JSONFormatter())
    return handler


def setup_logging(
    level: Optional[str] = None,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    (Re)configure the reviewtrust logger with a single handler.

    Arguments override the environment. Unknown levels fall back to INFO
    and any format other than "text" means JSON.
    """
    level = (level or os.getenv("REVIEWTRUST_LOG_LEVEL") or "INFO").upper()
    fmt = (fmt or os.getenv("REVIEWTRUST_LOG_FORMAT") or "json").lower()

    numeric = getattr(logging, level, None)

    logger = logging.getLogger(NAMESPACE)
    logger.setLevel(numeric if isinstance(numeric, int) else logging.INFO)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(_build_handler(fmt, stream))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger, e.g. get_logger("api") -> "reviewtrust.api"."""
    return logging.getLogger(f"{NAMESPACE}.{name}")
