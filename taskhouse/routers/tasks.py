from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskhouse.core.database import get_db
from taskhouse.core.errors import NotFound
from taskhouse.deps import get_identity
from taskhouse.schemas.work import CommentCreateRequest, TaskCreateRequest, TaskStatusRequest, TaskUpdateRequest
from taskhouse.services import queries
from taskhouse.services.comments import add_comment
from taskhouse.services.identity import Identity
from taskhouse.services.tasks import create_task, update_task, update_task_status

router = APIRouter(prefix="/api", tags=["tasks"])


@router.post("/tenants/{tenant_id}/tasks", status_code=201)
def post_task(
    tenant_id: int,
    payload: TaskCreateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    task_id = create_task(db, identity, tenant_id=tenant_id, **payload.model_dump())
    return {"id": task_id}


@router.get("/tasks/{task_id}")
def read_task(
    task_id: int,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    task = queries.task_by_id(db, identity, task_id)
    if task is None:
        raise NotFound("Tarefa não encontrada")
    return task


@router.patch("/tasks/{task_id}")
def patch_task(
    task_id: int,
    payload: TaskUpdateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"id": update_task(db, identity, task_id, payload.model_dump(exclude_unset=True))}


@router.patch("/tasks/{task_id}/status")
def patch_task_status(
    task_id: int,
    payload: TaskStatusRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"id": update_task_status(db, identity, task_id, payload.status)}


@router.post("/tasks/{task_id}/comments", status_code=201)
def post_comment(
    task_id: int,
    payload: CommentCreateRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
):
    return {"id": add_comment(db, identity, task_id, payload.content, payload.mentions)}
