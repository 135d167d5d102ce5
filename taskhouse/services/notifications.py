from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from taskhouse.core.config import NOTIFICATIONS_PAGE_SIZE
from taskhouse.core.database import atomic
from taskhouse.core.errors import NotFound, PermissionDenied
from taskhouse.core.permissions import ALL_ROLES, ROLE_ADMIN
from taskhouse.models.notification import Notification
from taskhouse.models.user import User
from taskhouse.services.identity import Identity, resolve_caller, resolve_current_user

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    *,
    tenant_id: int,
    user_ids: Iterable[int],
    type: str,
    title: str,
    message: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
    exclude: Iterable[int] = (),
) -> list[int]:
    """Queue one notification per recipient, in order, skipping duplicates and ``exclude``.

    Returns the ids of the users notified so callers can chain fan-outs without
    notifying anyone twice.
    """
    skip = {int(user_id) for user_id in exclude}
    notified: list[int] = []
    for user_id in user_ids:
        user_id = int(user_id)
        if user_id in skip:
            continue
        skip.add(user_id)
        db.add(
            Notification(
                tenant_id=tenant_id,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                entity_type=entity_type,
                entity_id=entity_id,
                is_read=False,
            )
        )
        notified.append(user_id)
    if notified:
        logger.debug("notifications queued type=%s recipients=%s", type, notified)
    return notified


def _ensure_self_or_admin(current_user: User, user_id: int) -> None:
    if current_user.role != ROLE_ADMIN and current_user.id != user_id:
        raise PermissionDenied("Você só pode acessar as próprias notificações")


def serialize_notification(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "tenant_id": notification.tenant_id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "entity_type": notification.entity_type,
        "entity_id": notification.entity_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at,
    }


def mark_notification_read(db: Session, identity: Identity | None, notification_id: int) -> int:
    current_user = resolve_caller(db, identity, ALL_ROLES)
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.tenant_id == current_user.tenant_id)
        .first()
    )
    if notification is None:
        raise NotFound("Notificação não encontrada")

    _ensure_self_or_admin(current_user, notification.user_id)

    with atomic(db):
        notification.is_read = True
    return notification.id


def mark_all_notifications_read(db: Session, identity: Identity | None, tenant_id: int, user_id: int) -> int:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    _ensure_self_or_admin(current_user, user_id)

    unread = (
        db.query(Notification)
        .filter(
            Notification.tenant_id == tenant_id,
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .all()
    )
    with atomic(db):
        for notification in unread:
            notification.is_read = True
    return len(unread)


def notifications_for_user(
    db: Session,
    identity: Identity | None,
    tenant_id: int,
    user_id: int,
    limit: int = NOTIFICATIONS_PAGE_SIZE,
) -> list[dict[str, Any]]:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    _ensure_self_or_admin(current_user, user_id)

    notifications = (
        db.query(Notification)
        .filter(Notification.tenant_id == tenant_id, Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
    return [serialize_notification(entry) for entry in notifications]


def unread_notification_count(db: Session, identity: Identity | None, tenant_id: int, user_id: int) -> int:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    _ensure_self_or_admin(current_user, user_id)

    return (
        db.query(Notification)
        .filter(
            Notification.tenant_id == tenant_id,
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .count()
    )
