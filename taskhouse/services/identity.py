from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskhouse.core.errors import (
    AccountInactive,
    AuthenticationRequired,
    InsufficientPermissions,
    InvalidReference,
    UserNotFound,
)
from taskhouse.core.permissions import ALL_ROLES
from taskhouse.core.request_context import set_request_context
from taskhouse.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity extracted from a server-issued token.

    Tokens are bound to the user and tenant that authenticated; the role is
    always read back from the database.
    """

    user_id: int
    tenant_id: int
    email: str


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def log_access_denied(*, reason: str, identity: Identity | None, tenant_id: int | None, user: User | None = None) -> None:
    logger.warning(
        "Access denied (%s): email=%s user_id=%s user_role=%s token_tenant=%s tenant_id=%s",
        reason,
        getattr(identity, "email", None),
        getattr(user, "id", None) or getattr(identity, "user_id", None),
        getattr(user, "role", None),
        getattr(identity, "tenant_id", None),
        tenant_id,
    )


def resolve_current_user(
    db: Session,
    identity: Identity | None,
    tenant_id: int,
    allowed_roles: Iterable[str] = ALL_ROLES,
) -> User:
    """Resolve the caller to an active user of ``tenant_id`` holding one of ``allowed_roles``."""
    if identity is None or not identity.email or not identity.user_id:
        log_access_denied(reason="no_identity", identity=identity, tenant_id=tenant_id)
        raise AuthenticationRequired()

    # Token emitido para outro tenant nunca alcança este, mesmo com o mesmo email.
    if identity.tenant_id is None or int(identity.tenant_id) != int(tenant_id):
        log_access_denied(reason="tenant_mismatch", identity=identity, tenant_id=tenant_id)
        raise UserNotFound()

    user = (
        db.query(User)
        .filter(
            User.id == int(identity.user_id),
            User.tenant_id == tenant_id,
            func.lower(User.email) == normalize_email(identity.email),
        )
        .first()
    )
    if user is None:
        log_access_denied(reason="user_not_found", identity=identity, tenant_id=tenant_id)
        raise UserNotFound()

    if not user.is_active:
        log_access_denied(reason="inactive", identity=identity, tenant_id=tenant_id, user=user)
        raise AccountInactive()

    allowed = set(allowed_roles)
    if user.role not in allowed:
        log_access_denied(reason="role_denied", identity=identity, tenant_id=tenant_id, user=user)
        raise InsufficientPermissions(
            f"Permissão insuficiente. Necessário: {', '.join(role for role in ALL_ROLES if role in allowed)}"
        )

    set_request_context(tenant_id=tenant_id, user_id=user.id, user_role=user.role)
    return user


def resolve_caller(db: Session, identity: Identity | None, allowed_roles: Iterable[str] = ALL_ROLES) -> User:
    """Resolve the caller in the tenant its credential was issued for.

    Used by operations addressed by entity id alone; the entity is then looked
    up inside ``user.tenant_id`` so ids from other tenants read as missing.
    """
    if identity is None or not identity.tenant_id:
        log_access_denied(reason="no_identity", identity=identity, tenant_id=None)
        raise AuthenticationRequired()
    return resolve_current_user(db, identity, int(identity.tenant_id), allowed_roles)


def get_tenant_user(db: Session, tenant_id: int, user_id: int) -> User | None:
    """A user of ``tenant_id``; ids from other tenants resolve to None."""
    return db.query(User).filter(User.id == user_id, User.tenant_id == tenant_id).first()


def load_tenant_users(
    db: Session,
    tenant_id: int,
    user_ids: Iterable[int],
    *,
    error: type[InvalidReference] = InvalidReference,
    detail: str | None = None,
) -> dict[int, User]:
    """Load every id in one query; raise ``error`` if any is missing from the tenant."""
    wanted = {int(user_id) for user_id in user_ids}
    if not wanted:
        return {}
    users = db.query(User).filter(User.tenant_id == tenant_id, User.id.in_(wanted)).all()
    found = {user.id: user for user in users}
    missing = wanted - found.keys()
    if missing:
        logger.info("Rejected unknown user references tenant_id=%s ids=%s", tenant_id, sorted(missing))
        raise error(detail)
    return found
