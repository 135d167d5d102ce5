from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskhouse.core.database import get_db
from taskhouse.deps import get_identity
from taskhouse.schemas.accounts import AcceptInviteRequest, InviteRequest
from taskhouse.services.identity import Identity
from taskhouse.services.invitations import accept_invite, invite_user

router = APIRouter(prefix="/api", tags=["invitations"])


@router.post("/tenants/{tenant_id}/invitations", status_code=201)
def create_invitation(
    tenant_id: int,
    payload: InviteRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return invite_user(db, identity, tenant_id, payload.email, payload.role)


@router.post("/invitations/accept", status_code=201)
def accept_invitation(payload: AcceptInviteRequest, db: Session = Depends(get_db)):
    return accept_invite(db, payload.token, payload.name, payload.password)
