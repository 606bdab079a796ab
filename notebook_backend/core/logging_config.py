"""
Centralized logging for the gateway.

Every record passes through the same pipeline: the message and any stack
trace are redacted, then rendered as JSON (production, log files) or as a
tab-separated line (development). The current request's correlation ID
rides along in a context variable set by CorrelationIdMiddleware.

All modules should use:
    from notebook_backend.core.logging_config import get_logger
    logger = get_logger(__name__)
"""

import json
import logging
import os
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from notebook_backend.core.config import get

ROOT_LOGGER = "notebook_backend"
CORRELATION_HEADER = "x-correlation-id"
LOG_FILE_NAME = "gateway.log"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Correlation ID of the request being handled ("" outside a request)."""
    return _correlation_id.get()


def set_correlation_id(cid: str) -> None:
    _correlation_id.set(cid)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def _environment() -> str:
    return os.environ.get("APP_ENV", os.environ.get("ENV", "development")).lower()


def is_production() -> bool:
    return _environment() == "production"


def is_development() -> bool:
    return _environment() in ("development", "dev", "local", "")


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------
# key=value / key: value pairs, including "Authorization: Bearer <jwt>"
_KEYED_SECRET = re.compile(
    r"(api[_-]?key|token|secret|authorization)(\s*[:=]\s*)(['\"]?)(?:bearer\s+)?[^\s'\",]+\3",
    re.IGNORECASE,
)
_BEARER_SECRET = re.compile(r"(bearer\s+)[\w\-\.~+/]{8,}=*", re.IGNORECASE)

# values of these variables never reach a log line
SECRET_ENV_VARS = (
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "NOTEBOOK_GENERATION_AUTH",
)


def redact_secrets(message: str) -> str:
    """Mask credentials and configured secret values in ``message``."""
    message = _KEYED_SECRET.sub(r"\1\2\3[REDACTED]\3", message)
    message = _BEARER_SECRET.sub(r"\1[REDACTED]", message)
    for var in SECRET_ENV_VARS:
        value = os.environ.get(var)
        if value and len(value) > 4:
            message = message.replace(value, "[REDACTED]")
    return message


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------
class _GatewayFormatter(logging.Formatter):
    """Shared redaction and extraction for both output styles."""

    def message(self, record: logging.LogRecord) -> str:
        return redact_secrets(record.getMessage())

    def stack_trace(self, record: logging.LogRecord) -> Optional[str]:
        if not record.exc_info or record.exc_info[1] is None:
            return None
        return redact_secrets(self.formatException(record.exc_info))

    @staticmethod
    def data(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
        """Structured fields passed as ``extra={"data": {...}}``."""
        data = getattr(record, "data", None)
        return data if isinstance(data, dict) else None

    @staticmethod
    def created(record: logging.LogRecord) -> datetime:
        return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredJsonFormatter(_GatewayFormatter):
    """One JSON object per record, for production consoles and log files."""

    LEVELS = {"WARNING": "warn", "CRITICAL": "fatal"}

    def __init__(self, service: str = ROOT_LOGGER):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.created(record).isoformat(),
            "level": self.LEVELS.get(record.levelname, record.levelname.lower()),
            "service": self.service,
            "context": record.name,
            "correlationId": get_correlation_id() or None,
            "message": self.message(record),
        }
        stack = self.stack_trace(record)
        if stack:
            entry["stackTrace"] = stack
        data = self.data(record)
        if data is not None:
            entry["data"] = data
        return json.dumps(entry, default=str)


class DevelopmentFormatter(_GatewayFormatter):
    """LEVEL:<tab>time<tab>logger [cid]<tab>message<tab>data"""

    def format(self, record: logging.LogRecord) -> str:
        cid = get_correlation_id()
        columns = [
            f"{record.levelname}:",
            self.created(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"{record.name} [{cid[:8]}]" if cid else record.name,
            self.message(record),
        ]
        data = self.data(record)
        if data is not None:
            columns.append(json.dumps(data, default=str))

        line = "\t".join(columns)
        stack = self.stack_trace(record)
        return f"{line}\n{stack}" if stack else line


# ---------------------------------------------------------------------------
# File logging
# ---------------------------------------------------------------------------
def build_file_handler(log_dir: Path, retention_hours: int) -> TimedRotatingFileHandler:
    """JSON log file rotated hourly, keeping ``retention_hours`` old files."""
    log_dir.mkdir(parents=True, exist_ok=True)
    return TimedRotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        when="h",
        interval=1,
        backupCount=max(int(retention_hours), 1),
        encoding="utf-8",
        utc=True,
    )


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------
_configured = False


def configure_logging(
    log_level: str | None = None,
    service: str | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """Install console (and optionally file) handlers on the package logger.

    Arguments left as None come from the [app] and [logging] sections of
    notebook.toml. Calling again replaces the previous handlers.
    """
    global _configured

    level = (log_level or get("app", "log_level")).upper()
    service = service or get("app", "service_name")
    if enable_file_logging is None:
        enable_file_logging = get("logging", "file_logging")

    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, level, logging.INFO))

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        StructuredJsonFormatter(service) if is_production() else DevelopmentFormatter()
    )
    root.addHandler(console)

    if enable_file_logging:
        log_dir = Path(os.environ.get("LOG_DIR", get("logging", "log_dir")))
        try:
            file_handler = build_file_handler(log_dir, get("logging", "retention_hours"))
        except OSError as e:
            root.warning(f"File logging disabled, cannot write to {log_dir}: {e}")
        else:
            file_handler.setFormatter(StructuredJsonFormatter(service))
            root.addHandler(file_handler)

    root.propagate = not is_production()
    _configured = True


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger under the ``notebook_backend`` hierarchy.

    Module names already inside the package (``notebook_backend.gateway.api``)
    are used as-is; anything else is nested under the package root.
    """
    if not _configured:
        configure_logging()

    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
