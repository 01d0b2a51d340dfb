"""
Logging setup.

Text lines in development, one JSON object per line when
LOG_FORMAT=json or APP_ENV=production. Everything goes to stdout so
gunicorn / the container runtime can collect it.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from focus_progress.core.config import settings

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Loggers that are chatty at INFO (per-statement SQL, per-request client lines).
_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx")


class JSONFormatter(logging.Formatter):
    """One JSON object per record: time, level, logger, message, source line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "at": f"{record.module}:{record.lineno}",
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _use_json() -> bool:
    return settings.LOG_FORMAT.lower() == "json" or settings.APP_ENV == "production"


def setup_logging() -> logging.Logger:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if _use_json() else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
