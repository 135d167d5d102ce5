from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskhouse.core.database import get_db
from taskhouse.core.metrics import request_metrics
from taskhouse.core.permissions import ROLE_ADMIN
from taskhouse.deps import get_identity
from taskhouse.services.identity import Identity, resolve_current_user

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("/tenants")
def tenant_metrics(
    tenant_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    resolve_current_user(db, identity, tenant_id, [ROLE_ADMIN])
    return {"tenant_id": tenant_id, "metrics": request_metrics.snapshot_for_tenant(str(tenant_id))}
