"""
Logging setup for the SDK.

Library modules only call ``logging.getLogger(__name__)``; applications (and
the CLI) call ``configure_logging`` once to get structured JSON output.
"""

import logging
import logging.handlers
import sys
import os
import json
from datetime import datetime, timezone
from typing import Optional

ROOT_LOGGER = "x402_hook_sdk"


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per record, with context when present.
    """

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Extra context passed with logger.x(..., extra={"context": {...}})
        if hasattr(record, "context"):
            log_entry["context"] = record.context

        return json.dumps(log_entry, default=str)


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the SDK root logger with a console handler and an optional
    rotating file handler. Safe to call more than once.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(StructuredFormatter())
            logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Failed to setup file logging: {e}")

    return logger
