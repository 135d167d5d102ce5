from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskhouse.core.database import get_db
from taskhouse.deps import get_identity
from taskhouse.schemas.work import ProjectCreateRequest, ProjectStatusName, ProjectUpdateRequest
from taskhouse.services import queries
from taskhouse.services.identity import Identity
from taskhouse.services.projects import create_project, update_project

router = APIRouter(prefix="/api", tags=["projects"])


@router.get("/tenants/{tenant_id}/projects")
def read_projects(
    tenant_id: int,
    status: Optional[ProjectStatusName] = None,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return queries.list_projects(db, identity, tenant_id, status)


@router.post("/tenants/{tenant_id}/projects", status_code=201)
def post_project(
    tenant_id: int,
    payload: ProjectCreateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    project_id = create_project(db, identity, tenant_id=tenant_id, **payload.model_dump())
    return {"id": project_id}


@router.patch("/projects/{project_id}")
def patch_project(
    project_id: int,
    payload: ProjectUpdateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"id": update_project(db, identity, project_id, payload.model_dump(exclude_unset=True))}


@router.get("/tenants/{tenant_id}/projects/{project_id}/tasks")
def read_project_tasks(
    tenant_id: int,
    project_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return queries.tasks_by_project(db, identity, tenant_id, project_id)


@router.get("/tenants/{tenant_id}/projects/{project_id}/overview")
def read_project_overview(
    tenant_id: int,
    project_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return queries.project_overview(db, identity, tenant_id, project_id)
