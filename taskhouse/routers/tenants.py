from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from taskhouse.core.config import ACTIVITY_PAGE_SIZE
from taskhouse.core.database import get_db
from taskhouse.deps import get_identity
from taskhouse.schemas.accounts import TenantUpdateRequest, UserUpdateRequest
from taskhouse.services import queries
from taskhouse.services.identity import Identity
from taskhouse.services.tenants import get_tenant, update_tenant_settings
from taskhouse.services.users import list_users, update_user

router = APIRouter(prefix="/api/tenants/{tenant_id}", tags=["tenants"])


@router.get("")
def read_tenant(
    tenant_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return get_tenant(db, identity, tenant_id)


@router.patch("")
def patch_tenant(
    tenant_id: int,
    payload: TenantUpdateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return update_tenant_settings(db, identity, tenant_id, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.get("/users")
def read_users(
    tenant_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return list_users(db, identity, tenant_id)


@router.patch("/users/{user_id}")
def patch_user(
    tenant_id: int,
    user_id: int,
    payload: UserUpdateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return update_user(db, identity, tenant_id, user_id, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.get("/overview")
def read_tenant_overview(
    tenant_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return queries.tenant_overview(db, identity, tenant_id)


@router.get("/activity")
def read_activity(
    tenant_id: int,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = Query(ACTIVITY_PAGE_SIZE, ge=1, le=500),
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return queries.activity_for_tenant(db, identity, tenant_id, entity_type, entity_id, limit)
