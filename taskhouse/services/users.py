from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.orm import Session

from taskhouse.core.clock import utcnow
from taskhouse.core.database import atomic
from taskhouse.core.errors import InsufficientPermissions, NotFound, PermissionDenied, ValidationFailed
from taskhouse.core.permissions import ALL_ROLES, can_assign_role, has_permission
from taskhouse.models.user import User
from taskhouse.services.activity_log import log_activity
from taskhouse.services.identity import Identity, get_tenant_user, resolve_current_user

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "role", "is_active", "avatar_url")


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar_url": user.avatar_url,
        "role": user.role,
        "is_active": user.is_active,
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
    }


def list_users(db: Session, identity: Identity | None, tenant_id: int) -> list[dict[str, Any]]:
    resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    users = db.query(User).filter(User.tenant_id == tenant_id).order_by(User.name.asc(), User.id.asc()).all()
    return [serialize_user(user) for user in users]


def update_user(
    db: Session,
    identity: Identity | None,
    tenant_id: int,
    user_id: int,
    changes: Mapping[str, Any],
) -> dict[str, Any]:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    if not has_permission(current_user.role, "manage_users"):
        raise InsufficientPermissions("Apenas administradores podem gerenciar usuários")

    target = get_tenant_user(db, tenant_id, user_id)
    if target is None:
        raise NotFound("Usuário não encontrado")

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Campos não editáveis: {', '.join(sorted(unknown))}")

    updates = dict(changes)
    # Contas de mesmo nível (ou acima) só podem ser alteradas pelo próprio dono.
    if updates and target.id != current_user.id and not can_assign_role(current_user.role, target.role):
        logger.warning(
            "Access denied (rank): user_id=%s target_id=%s target_role=%s fields=%s",
            current_user.id,
            target.id,
            target.role,
            sorted(updates),
        )
        raise PermissionDenied(f"{current_user.role} não pode alterar a conta de um {target.role}")
    if "name" in updates:
        if not (updates["name"] or "").strip():
            raise ValidationFailed("Nome obrigatório")
        updates["name"] = updates["name"].strip()
    if "role" in updates and updates["role"] != target.role:
        new_role = updates["role"]
        if new_role not in ALL_ROLES:
            raise ValidationFailed(f"Papel inválido: {new_role}")
        if not can_assign_role(current_user.role, target.role) or not can_assign_role(current_user.role, new_role):
            logger.warning(
                "Access denied (role_assignment): user_id=%s target_id=%s from=%s to=%s",
                current_user.id,
                target.id,
                target.role,
                new_role,
            )
            raise PermissionDenied(f"{current_user.role} não pode alterar papel de {target.role} para {new_role}")
    if updates.get("is_active") is False and target.id == current_user.id:
        raise ValidationFailed("Você não pode desativar a própria conta")

    before = {field: getattr(target, field) for field in updates}
    with atomic(db):
        for field, value in updates.items():
            setattr(target, field, value)
        target.updated_at = utcnow()
        log_activity(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action="updated_user",
            entity_type="user",
            entity_id=target.id,
            before=before,
            after=updates,
        )

    return serialize_user(target)
