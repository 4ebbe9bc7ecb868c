"""
Logging for the DONEO workspace.

Every line carries the request, project and user it was written for. The middleware
fills those in per request; engine calls made outside HTTP log "-" for each.
"""

import logging
import logging.handlers
import json
import os
from datetime import datetime, timezone
from contextvars import ContextVar

from config import config

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
project_id_var: ContextVar[str] = ContextVar("project_id", default="-")
user_id_var: ContextVar[str] = ContextVar("user_id", default="-")

LOG_DIR = os.path.join(os.path.dirname(__file__), "logs")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _context() -> dict:
    return {
        "request_id": request_id_var.get("-"),
        "project_id": project_id_var.get("-"),
        "user_id": user_id_var.get("-"),
    }


def _data(record: logging.LogRecord):
    # Set via logger.info("...", extra={"data": {...}})
    return getattr(record, "data", None) or None


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for production and the log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            **_context(),
            "message": record.getMessage(),
        }
        data = _data(record)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured single line for a terminal."""

    LEVEL_COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelname, self.RESET)
        ctx = _context()
        line = (
            f"{colour}{record.levelname:<7}{self.RESET} {record.name} "
            f"[req={ctx['request_id']} project={ctx['project_id']} user={ctx['user_id']}] "
            f"{record.getMessage()}"
        )
        data = _data(record)
        if data:
            line += f"  | data={data}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _console_handler(level: str, production: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if production else DevFormatter())
    return handler


def _file_handler(log_dir: str) -> logging.Handler:
    os.makedirs(log_dir, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, "app.log"),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    # The file is always JSON at INFO and above, whatever the console does
    handler.setLevel(logging.INFO)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(settings=None, log_dir: str = LOG_DIR):
    """Install handlers on the root logger according to `settings` (the app config by default)."""
    settings = settings or config
    env = (settings.ENV or "development").lower()
    level = (settings.LOG_LEVEL or ("DEBUG" if env == "development" else "INFO")).upper()

    root = logging.getLogger()
    root.setLevel(level)
    # Reloads call this again
    root.handlers.clear()
    root.addHandler(_console_handler(level, production=env == "production"))

    file_path = None
    if settings.LOG_TO_FILE:
        file_handler = _file_handler(log_dir)
        root.addHandler(file_handler)
        file_path = file_handler.baseFilename

    for name, quiet_level in (("uvicorn.access", logging.WARNING), ("uvicorn.error", logging.INFO), ("httpx", logging.WARNING)):
        logging.getLogger(name).setLevel(quiet_level)

    get_logger("logging").info(
        "Logging initialized",
        extra={"data": {"env": env, "level": level, "file": file_path or "-"}},
    )
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger under the `doneo.` namespace."""
    return logging.getLogger(f"doneo.{name}")
