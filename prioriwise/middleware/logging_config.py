"""
Structured logging configuration.

- Development / testing: one line per record, coloured by level
- Production: one JSON object per record (log aggregator compatible)
- Log level: LOG_LEVEL env variable

Records emitted while a request is active are stamped with the request id
and owner id, so a recompute or sequencing log line can be joined to the
request that caused it.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Record attributes promoted to top-level JSON keys when set
CONTEXT_FIELDS = (
    "request_id",
    "owner_id",
    "job_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)


class RequestContextFilter(logging.Filter):
    """Copy request_id / owner_id from flask.g onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "owner_id", None) is None:
                record.owner_id = getattr(g, "owner_id", None)
        return True


def _context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """Production formatter: a flat JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        doc = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        doc.update(_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            doc["exception"] = self.formatException(record.exc_info)
        return json.dumps(doc, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Development formatter: `HH:MM:SS LEVEL logger: msg [req owner job 12ms]`."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        ctx = _context(record)
        tags = []
        if "request_id" in ctx:
            tags.append(f"req={ctx['request_id']}")
        if "owner_id" in ctx:
            tags.append(f"owner={ctx['owner_id']}")
        if "job_id" in ctx:
            tags.append(f"job={ctx['job_id']}")
        if "duration_ms" in ctx:
            tags.append(f"{ctx['duration_ms']:.0f}ms")
        suffix = f" [{' '.join(tags)}]" if tags else ""
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}{suffix}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_level(is_prod: bool) -> tuple[str, int]:
    name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    return name, getattr(logging, name, logging.INFO)


def configure_logging(app):
    """
    Install one stderr handler on the root logger.

    Reads LOG_LEVEL from env (default: DEBUG in dev, INFO in prod).
    Existing root handlers are replaced, so creating several apps in one
    process (tests) never duplicates output.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing
    level_name, level = _resolve_level(is_prod)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")
