from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from taskhouse.core.database import get_db
from taskhouse.core.permissions import ALL_ROLES, PERMISSIONS_VERSION, ROLE_PERMISSIONS
from taskhouse.deps import require_identity
from taskhouse.schemas.accounts import LoginRequest, SignupRequest
from taskhouse.services import tenants as tenant_service
from taskhouse.services.identity import Identity, resolve_current_user
from taskhouse.services.sessions import clear_session_cookie, create_session, set_session_cookie
from taskhouse.services.users import serialize_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, response: Response, db: Session = Depends(get_db)):
    result = tenant_service.register_tenant(
        db,
        name=payload.name,
        slug=payload.slug,
        admin_name=payload.admin_name,
        admin_email=payload.admin_email,
        admin_password=payload.admin_password,
    )
    set_session_cookie(response, create_session(result["admin_email"], result["user_id"], result["tenant_id"]))
    return result


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    result = tenant_service.login(
        db,
        tenant_slug=payload.tenant_slug,
        email=payload.email,
        password=payload.password,
    )
    set_session_cookie(response, create_session(result["email"], result["user_id"], result["tenant_id"]))
    return result


@router.post("/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/me")
def me(
    tenant_id: int,
    identity: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    return {
        **serialize_user(user),
        "tenant_id": user.tenant_id,
        "permissions": sorted(ROLE_PERMISSIONS.get(user.role, frozenset())),
        "permissions_version": PERMISSIONS_VERSION,
    }
