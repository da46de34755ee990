import json
import logging
import os
import re
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from school_portal.core.config import get_logging_config

TOKEN_PATTERN = re.compile(r"eyJ[\w-]*\.[\w-]*\.[\w-]*")


def redact_tokens(message: str) -> str:
    """Remove JWT-looking substrings from a log message"""
    if not message:
        return message
    return TOKEN_PATTERN.sub("[REDACTED_TOKEN]", str(message))


class CustomJsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""
    def __init__(self, **kwargs):
        super().__init__()
        self.kwargs = kwargs

    def format(self, record):
        json_record = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": redact_tokens(record.getMessage()),
        }

        if record.exc_info:
            json_record["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for field in self.kwargs.get("extra_fields", []):
            if hasattr(record, field):
                json_record[field] = getattr(record, field)

        return json.dumps(json_record, default=str)


class RedactingFormatter(logging.Formatter):
    def format(self, record):
        return redact_tokens(super().format(record))


class LoggerFactory:
    """Factory class for creating and configuring loggers"""

    @staticmethod
    def create_logger(name: str, log_dir: Optional[str] = None, level: str = "INFO"):
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level, logging.INFO))

        # Remove existing handlers if any
        if logger.handlers:
            logger.handlers.clear()

        console = logging.StreamHandler()
        console.setFormatter(RedactingFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        logger.addHandler(console)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            file_handlers = {
                "app": RotatingFileHandler(
                    os.path.join(log_dir, "app.log"),
                    maxBytes=10 * 1024 * 1024,  # 10MB
                    backupCount=5,
                ),
                "error": RotatingFileHandler(
                    os.path.join(log_dir, "error.log"),
                    maxBytes=10 * 1024 * 1024,
                    backupCount=5,
                ),
            }
            file_handlers["error"].setLevel(logging.ERROR)
            for handler in file_handlers.values():
                handler.setFormatter(CustomJsonFormatter(extra_fields=["user_id", "role", "path"]))
                logger.addHandler(handler)

        logger.propagate = False
        return logger


_config = get_logging_config()

# Create default logger instance
logger = LoggerFactory.create_logger(
    "SchoolPortalLogger",
    log_dir=_config["log_dir"],
    level=_config["log_level"],
)
