from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskhouse.core.clock import utcnow
from taskhouse.core.database import atomic
from taskhouse.core.errors import (
    AccountInactive,
    Conflict,
    InsufficientPermissions,
    InvalidCredentials,
    NotFound,
    ValidationFailed,
)
from taskhouse.core.permissions import ALL_ROLES, ROLE_ADMIN, has_permission
from taskhouse.models.task import TASK_STATUSES
from taskhouse.models.tenant import Tenant
from taskhouse.models.user import User
from taskhouse.services.activity_log import log_activity
from taskhouse.services.auth import create_access_token
from taskhouse.services.identity import Identity, normalize_email, resolve_current_user
from taskhouse.services.passwords import MIN_PASSWORD_LENGTH, hash_password, password_needs_rehash, verify_password
from taskhouse.utils.slug import SLUG_MAX_LENGTH, is_valid_slug, normalize_slug

logger = logging.getLogger(__name__)

BRANDING_KEYS = ("logo_url", "primary_color", "secondary_color")
SETTINGS_KEYS = ("allow_client_access", "default_task_statuses")
DEFAULT_SETTINGS = {"allow_client_access": True, "default_task_statuses": list(TASK_STATUSES)}


def _slug_exists(db: Session, slug: str) -> bool:
    return db.query(Tenant.id).filter(Tenant.slug == slug).first() is not None


def generate_unique_slug(db: Session, name: str, requested_slug: str | None = None) -> str:
    if requested_slug:
        candidate = normalize_slug(requested_slug)
        if not is_valid_slug(candidate):
            raise ValidationFailed("Slug inválido")
        if _slug_exists(db, candidate):
            raise Conflict("Slug já em uso")
        return candidate

    candidate = normalize_slug(name) or "workspace"
    if len(candidate) < 3:
        candidate = f"{candidate}-team"
    if not _slug_exists(db, candidate):
        return candidate

    suffix = 2
    while suffix <= 9999:
        tail = f"-{suffix}"
        with_suffix = f"{candidate[: SLUG_MAX_LENGTH - len(tail)].strip('-')}{tail}"
        if not _slug_exists(db, with_suffix):
            return with_suffix
        suffix += 1

    raise Conflict("Não foi possível gerar slug único")


def serialize_tenant(tenant: Tenant) -> dict[str, Any]:
    return {
        "id": tenant.id,
        "name": tenant.name,
        "slug": tenant.slug,
        "branding": dict(tenant.branding or {}),
        "settings": {**DEFAULT_SETTINGS, **(tenant.settings or {})},
        "created_at": tenant.created_at,
        "updated_at": tenant.updated_at,
    }


def register_tenant(
    db: Session,
    *,
    name: str,
    admin_name: str,
    admin_email: str,
    admin_password: str,
    slug: str | None = None,
) -> dict[str, Any]:
    """Create a tenant together with its first Admin user."""
    if not (name or "").strip():
        raise ValidationFailed("Nome do workspace obrigatório")
    if len(admin_password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")

    tenant_slug = generate_unique_slug(db, name, slug)

    with atomic(db):
        tenant = Tenant(
            name=name.strip(),
            slug=tenant_slug,
            branding={},
            settings=dict(DEFAULT_SETTINGS),
        )
        db.add(tenant)
        db.flush()

        admin = User(
            tenant_id=tenant.id,
            email=normalize_email(admin_email),
            name=admin_name.strip(),
            role=ROLE_ADMIN,
            password_hash=hash_password(admin_password),
            is_active=True,
        )
        db.add(admin)
        db.flush()

        log_activity(
            db,
            tenant_id=tenant.id,
            user_id=admin.id,
            action="created_tenant",
            entity_type="tenant",
            entity_id=tenant.id,
            after={"name": tenant.name, "slug": tenant.slug},
        )

    logger.info("tenant registered tenant_id=%s slug=%s", tenant.id, tenant.slug)
    return {
        "tenant_id": tenant.id,
        "slug": tenant.slug,
        "name": tenant.name,
        "user_id": admin.id,
        "admin_email": admin.email,
        "access_token": create_access_token(admin.email, admin.id, tenant.id),
    }


def login(db: Session, *, tenant_slug: str, email: str, password: str) -> dict[str, Any]:
    tenant = db.query(Tenant).filter(Tenant.slug == normalize_slug(tenant_slug)).first()
    normalized_email = normalize_email(email)
    user = None
    if tenant is not None:
        user = (
            db.query(User)
            .filter(User.tenant_id == tenant.id, func.lower(User.email) == normalized_email)
            .first()
        )

    if user is None or not verify_password(password, user.password_hash):
        logger.warning("login failed tenant_slug=%s email=%s", tenant_slug, normalized_email)
        raise InvalidCredentials()
    if not user.is_active:
        logger.warning("login rejected for inactive user_id=%s", user.id)
        raise AccountInactive()

    with atomic(db):
        user.last_login_at = utcnow()
        if password_needs_rehash(password, user.password_hash):
            user.password_hash = hash_password(password)

    return {
        "access_token": create_access_token(user.email, user.id, user.tenant_id),
        "token_type": "bearer",
        "tenant_id": tenant.id,
        "tenant_slug": tenant.slug,
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
    }


def get_tenant(db: Session, identity: Identity | None, tenant_id: int) -> dict[str, Any]:
    resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is None:
        raise NotFound("Tenant não encontrado")
    return serialize_tenant(tenant)


def update_tenant_settings(
    db: Session,
    identity: Identity | None,
    tenant_id: int,
    changes: Mapping[str, Any],
) -> dict[str, Any]:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    if not has_permission(current_user.role, "manage_tenant"):
        raise InsufficientPermissions("Apenas administradores podem alterar o workspace")

    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is None:
        raise NotFound("Tenant não encontrado")

    updates: dict[str, Any] = {}
    if changes.get("name") is not None:
        if not changes["name"].strip():
            raise ValidationFailed("Nome do workspace obrigatório")
        updates["name"] = changes["name"].strip()
    if changes.get("branding") is not None:
        updates["branding"] = {
            **(tenant.branding or {}),
            **{key: value for key, value in changes["branding"].items() if key in BRANDING_KEYS},
        }
    if changes.get("settings") is not None:
        settings = {key: value for key, value in changes["settings"].items() if key in SETTINGS_KEYS}
        statuses = settings.get("default_task_statuses")
        if statuses is not None and any(status not in TASK_STATUSES for status in statuses):
            raise ValidationFailed("Status de tarefa inválido")
        updates["settings"] = {**(tenant.settings or {}), **settings}

    before = {field: getattr(tenant, field) for field in updates}
    with atomic(db):
        for field, value in updates.items():
            setattr(tenant, field, value)
        tenant.updated_at = utcnow()
        log_activity(
            db,
            tenant_id=tenant.id,
            user_id=current_user.id,
            action="updated_tenant",
            entity_type="tenant",
            entity_id=tenant.id,
            before=before,
            after=updates,
        )

    return serialize_tenant(tenant)
