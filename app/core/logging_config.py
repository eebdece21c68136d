"""Logging setup: JSON lines by default, plain text when APP_LOG_JSON=false."""

import logging
import sys

from pythonjsonlogger import jsonlogger

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "PIL", "passlib")


def setup_logging() -> None:
    handler = logging.StreamHandler(sys.stdout)
    if settings.log_json:
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                fmt=LOG_FORMAT,
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    # uvicorn.access duplicates RequestLoggingMiddleware
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
