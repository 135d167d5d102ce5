from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from taskhouse.core.config import NOTIFICATIONS_PAGE_SIZE
from taskhouse.core.database import get_db
from taskhouse.deps import get_identity
from taskhouse.services.identity import Identity
from taskhouse.services.notifications import (
    mark_all_notifications_read,
    mark_notification_read,
    notifications_for_user,
    unread_notification_count,
)

router = APIRouter(prefix="/api", tags=["notifications"])


@router.get("/tenants/{tenant_id}/users/{user_id}/notifications")
def read_notifications(
    tenant_id: int,
    user_id: int,
    limit: int = Query(NOTIFICATIONS_PAGE_SIZE, ge=1, le=200),
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return notifications_for_user(db, identity, tenant_id, user_id, limit)


@router.get("/tenants/{tenant_id}/users/{user_id}/notifications/unread-count")
def read_unread_count(
    tenant_id: int,
    user_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"unread": unread_notification_count(db, identity, tenant_id, user_id)}


@router.post("/tenants/{tenant_id}/users/{user_id}/notifications/read-all")
def read_all(
    tenant_id: int,
    user_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"updated": mark_all_notifications_read(db, identity, tenant_id, user_id)}


@router.post("/notifications/{notification_id}/read")
def read_one(
    notification_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"id": mark_notification_read(db, identity, notification_id)}
