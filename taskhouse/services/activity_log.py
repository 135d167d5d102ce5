from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from taskhouse.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return value


def log_activity(
    db: Session,
    *,
    tenant_id: int,
    user_id: int,
    action: str,
    entity_type: str,
    entity_id: int,
    before: Optional[Mapping[str, Any]] = None,
    after: Optional[Mapping[str, Any]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> ActivityLog:
    details: dict[str, Any] = {}
    if before is not None:
        details["before"] = _jsonable(before)
    if after is not None:
        details["after"] = _jsonable(after)
    if metadata is not None:
        details["metadata"] = _jsonable(metadata)

    entry = ActivityLog(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    db.add(entry)
    logger.info(
        "activity %s",
        action,
        extra={"action": action, "entity_type": entity_type, "entity_id": entity_id},
    )
    return entry
