from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskhouse.core.clock import utcnow
from taskhouse.core.config import INVITATION_TTL_DAYS
from taskhouse.core.database import atomic
from taskhouse.core.errors import (
    AlreadyAccepted,
    Conflict,
    Expired,
    InsufficientPermissions,
    InvalidToken,
    ValidationFailed,
)
from taskhouse.core.permissions import ALL_ROLES, ROLE_ADMIN, ROLE_PROJECT_MANAGER, can_assign_role
from taskhouse.models.invitation import Invitation
from taskhouse.models.user import User
from taskhouse.services.activity_log import log_activity
from taskhouse.services.identity import Identity, normalize_email, resolve_current_user
from taskhouse.services.passwords import MIN_PASSWORD_LENGTH, hash_password

logger = logging.getLogger(__name__)

INVITER_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER)
TOKEN_BYTES = 32


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def _user_exists(db: Session, tenant_id: int, email: str) -> bool:
    return (
        db.query(User.id)
        .filter(User.tenant_id == tenant_id, func.lower(User.email) == email)
        .first()
        is not None
    )


def invite_user(db: Session, identity: Identity | None, tenant_id: int, email: str, role: str) -> dict[str, Any]:
    current_user = resolve_current_user(db, identity, tenant_id, INVITER_ROLES)

    if role not in ALL_ROLES:
        raise ValidationFailed(f"Papel inválido: {role}")
    if current_user.role != ROLE_ADMIN and not can_assign_role(current_user.role, role):
        raise InsufficientPermissions(f"{current_user.role} não pode convidar usuários com papel {role}")

    normalized_email = normalize_email(email)
    if not normalized_email:
        raise ValidationFailed("Email obrigatório")
    if _user_exists(db, tenant_id, normalized_email):
        raise Conflict("Usuário já existe neste tenant")

    now = utcnow()
    pending = (
        db.query(Invitation)
        .filter(
            Invitation.tenant_id == tenant_id,
            Invitation.email == normalized_email,
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > now,
        )
        .first()
    )
    if pending is not None:
        raise Conflict("Convite já enviado e ainda válido")

    with atomic(db):
        invitation = Invitation(
            tenant_id=tenant_id,
            email=normalized_email,
            role=role,
            invited_by=current_user.id,
            token=generate_invitation_token(),
            expires_at=now + timedelta(days=INVITATION_TTL_DAYS),
        )
        db.add(invitation)
        db.flush()

        log_activity(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action="invited_user",
            entity_type="invitation",
            entity_id=invitation.id,
            metadata={"email": normalized_email, "role": role},
        )

    logger.info("invitation created invitation_id=%s tenant_id=%s role=%s", invitation.id, tenant_id, role)
    return {"invitation_id": invitation.id, "token": invitation.token}


def accept_invite(db: Session, token: str, name: str, password: str) -> dict[str, Any]:
    invitation = db.query(Invitation).filter(Invitation.token == (token or "")).first()
    if invitation is None:
        raise InvalidToken()
    if invitation.accepted_at is not None:
        raise AlreadyAccepted()

    now = utcnow()
    if invitation.is_expired(now):
        raise Expired()

    if not (name or "").strip():
        raise ValidationFailed("Nome obrigatório")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")
    if _user_exists(db, invitation.tenant_id, invitation.email):
        raise Conflict("Usuário já existe neste tenant")

    with atomic(db):
        user = User(
            tenant_id=invitation.tenant_id,
            email=invitation.email,
            name=name.strip(),
            role=invitation.role,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        db.flush()

        invitation.accepted_at = now
        log_activity(
            db,
            tenant_id=invitation.tenant_id,
            user_id=user.id,
            action="accepted_invitation",
            entity_type="invitation",
            entity_id=invitation.id,
            metadata={"role": invitation.role},
        )

    logger.info("invitation accepted invitation_id=%s user_id=%s", invitation.id, user.id)
    return {"user_id": user.id, "tenant_id": invitation.tenant_id}
