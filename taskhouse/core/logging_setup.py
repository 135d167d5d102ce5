from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any

from taskhouse.core import request_context

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_LOG_LEVEL = os.getenv("SQL_LOG_LEVEL", "WARNING").upper()

_MASKED = r"\1***"
_SECRET_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(authorization\s*[:=]\s*bearer\s+)([^\s\"]+)",
        r"(token\s*[:=]\s*)([^\s\",}]+)",
        r"(password\s*[:=]\s*)([^\s\",}]+)",
        r"(secret\s*[:=]\s*)([^\s\",}]+)",
    )
)

# Campos passados via extra={...} que entram no JSON quando presentes.
_EXTRA_FIELDS = ("endpoint", "method", "status_code", "duration_ms", "action", "entity_type", "entity_id")

_CONTEXT_GETTERS = {
    "request_id": request_context.get_request_id,
    "tenant_id": request_context.get_tenant_id,
    "user_id": request_context.get_user_id,
    "user_role": request_context.get_user_role,
}


def mask_secrets(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(_MASKED, text)
    return text


class JsonFormatter(logging.Formatter):
    """One JSON object per line, enriched with the current request context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
        }
        for field, getter in _CONTEXT_GETTERS.items():
            payload[field] = getattr(record, field, None) or getter()
        payload["message"] = mask_secrets(record.getMessage())

        payload.update(
            {field: getattr(record, field) for field in _EXTRA_FIELDS if getattr(record, field, None) is not None}
        )
        if record.exc_info:
            payload["exception"] = mask_secrets(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    level = (level or LOG_LEVEL).upper()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(SQL_LOG_LEVEL)
