"""
Logging setup for SiteLedger.

Every record emitted while a request is being handled is stamped with the
caller's organization, user and request id, so service-level log lines
(PO created, transfer approved, ...) can be traced to a tenant without
each call site passing ``extra=``.

Production writes one JSON object per line; development and testing use a
short coloured line.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

CONTEXT_FIELDS = ("organization_id", "user_id", "request_id")
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")


class RequestContextFilter(logging.Filter):
    """Copy organization / user / request id from ``flask.g`` onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        access = getattr(g, "access", None)
        values = {
            "organization_id": access.home_organization_id if access is not None else None,
            "user_id": getattr(g, "jwt_user_id", None),
            "request_id": getattr(g, "request_id", None),
        }
        for key, value in values.items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    COLORS = {"DEBUG": "\033[36m", "INFO": "\033[32m", "WARNING": "\033[33m",
              "ERROR": "\033[31m", "CRITICAL": "\033[35m"}
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = f"{color}{record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        org = getattr(record, "organization_id", None)
        if org is not None:
            line += f" org={org}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger.

    JSON in production, readable otherwise. Level comes from ``LOG_LEVEL``
    (config first, then environment).
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()  # create_app() runs more than once under tests
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)
    return handler
