"""ADPILOT — Structured JSON Logging.

One JSON object per line on stdout. Context travels through `extra=`:
the owning identity, the ads account, the AI provider, elapsed time and
what started a sync pass.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from app.config import settings

LOGGER_PREFIX = "adpilot"
CONTEXT_FIELDS = ("user_id", "account_id", "provider", "duration_ms", "trigger")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Named logger under the `adpilot.` namespace with the JSON handler attached once."""
    logger = logging.getLogger(f"{LOGGER_PREFIX}.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
