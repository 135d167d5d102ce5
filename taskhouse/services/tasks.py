from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from sqlalchemy.orm import Session

from taskhouse.core.clock import to_naive_utc, utcnow
from taskhouse.core.database import atomic
from taskhouse.core.errors import InvalidAssignee, NotFound, PermissionDenied, ValidationFailed
from taskhouse.core.permissions import CONTRIBUTOR_ROLES, is_project_participant
from taskhouse.models.project import PRIORITIES, Project
from taskhouse.models.task import TASK_STATUSES, Task
from taskhouse.models.user import User
from taskhouse.services.activity_log import log_activity
from taskhouse.services.identity import Identity, load_tenant_users, resolve_caller, resolve_current_user
from taskhouse.services.notifications import notify
from taskhouse.services.project_stats import recompute_project_stats
from taskhouse.services.projects import get_project

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "priority",
    "assignees",
    "due_date",
    "estimated_hours",
    "actual_hours",
    "tags",
    "parent_task_id",
)


def _unique(values: Iterable[Any] | None) -> list[Any]:
    result: list[Any] = []
    for value in values or []:
        if value not in result:
            result.append(value)
    return result


def _get_task(db: Session, tenant_id: int, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id, Task.tenant_id == tenant_id).first()
    if task is None:
        raise NotFound("Tarefa não encontrada")
    return task


def _load_task_context(db: Session, identity: Identity | None, task_id: int) -> tuple[Task, Project, User]:
    """Task, its project and the caller, after role and relationship checks."""
    current_user = resolve_caller(db, identity, CONTRIBUTOR_ROLES)
    task = _get_task(db, current_user.tenant_id, task_id)
    project = get_project(db, task.tenant_id, task.project_id)
    if not is_project_participant(current_user.role, current_user.id, project, task):
        logger.warning(
            "Access denied (not_participant): user_id=%s task_id=%s project_id=%s",
            current_user.id,
            task.id,
            project.id,
        )
        raise PermissionDenied("Você não tem permissão para alterar esta tarefa")
    return task, project, current_user


def _resolve_parent(db: Session, task: Task | None, project: Project, parent_task_id: int | None) -> Task | None:
    if parent_task_id is None:
        return None
    parent = (
        db.query(Task)
        .filter(
            Task.id == parent_task_id,
            Task.tenant_id == project.tenant_id,
            Task.project_id == project.id,
        )
        .first()
    )
    if parent is None:
        raise NotFound("Tarefa pai não encontrada neste projeto")
    if task is not None:
        ensure_no_cycle(db, task.id, parent)
    return parent


def ensure_no_cycle(db: Session, task_id: int, parent: Task) -> None:
    """Walk up from ``parent``; reaching ``task_id`` means the new link closes a loop."""
    seen: set[int] = set()
    current: Task | None = parent
    while current is not None:
        if current.id == task_id:
            raise ValidationFailed("Subtarefa não pode ser ancestral de si mesma")
        if current.id in seen:
            # Ciclo pré-existente acima do pai; o novo vínculo não o alcança.
            break
        seen.add(current.id)
        if current.parent_task_id is None:
            break
        current = db.query(Task).filter(Task.id == current.parent_task_id).first()


def create_task(
    db: Session,
    identity: Identity | None,
    *,
    tenant_id: int,
    project_id: int,
    title: str,
    description: str = "",
    priority: str = "Medium",
    assignees: Iterable[int] = (),
    due_date: datetime | None = None,
    estimated_hours: float | None = None,
    tags: Iterable[str] | None = None,
    parent_task_id: int | None = None,
) -> int:
    current_user = resolve_current_user(db, identity, tenant_id, CONTRIBUTOR_ROLES)
    project = get_project(db, tenant_id, project_id)

    if not is_project_participant(current_user.role, current_user.id, project):
        raise PermissionDenied("Você precisa fazer parte da equipe do projeto para criar tarefas")
    if priority not in PRIORITIES:
        raise ValidationFailed(f"Prioridade inválida: {priority}")

    assignee_ids = _unique(int(value) for value in assignees)
    load_tenant_users(db, tenant_id, assignee_ids, error=InvalidAssignee)
    _resolve_parent(db, None, project, parent_task_id)

    with atomic(db):
        task = Task(
            tenant_id=tenant_id,
            project_id=project.id,
            parent_task_id=parent_task_id,
            title=title.strip(),
            description=description or "",
            status="ToDo",
            priority=priority,
            assignees=assignee_ids,
            tags=_unique(tags),
            created_by=current_user.id,
            due_date=to_naive_utc(due_date),
            estimated_hours=estimated_hours,
        )
        db.add(task)
        db.flush()

        recompute_project_stats(db, project)
        log_activity(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action="created_task",
            entity_type="task",
            entity_id=task.id,
            after={"title": task.title, "assignees": assignee_ids},
        )
        notify(
            db,
            tenant_id=tenant_id,
            user_ids=assignee_ids,
            type="task_assigned",
            title="Tarefa atribuída",
            message=f"Você foi atribuído à tarefa: {task.title}",
            entity_type="task",
            entity_id=task.id,
            exclude=[current_user.id],
        )

    logger.info("task created task_id=%s project_id=%s", task.id, project.id)
    return task.id


def update_task_status(db: Session, identity: Identity | None, task_id: int, status: str) -> int:
    if status not in TASK_STATUSES:
        raise ValidationFailed(f"Status inválido: {status}")

    task, project, current_user = _load_task_context(db, identity, task_id)
    old_status = task.status

    with atomic(db):
        task.status = status
        task.completed_at = utcnow() if status == "Done" else None
        task.updated_at = utcnow()

        recompute_project_stats(db, project)
        log_activity(
            db,
            tenant_id=task.tenant_id,
            user_id=current_user.id,
            action="updated_task_status",
            entity_type="task",
            entity_id=task.id,
            before={"status": old_status},
            after={"status": status},
        )
        notify(
            db,
            tenant_id=task.tenant_id,
            user_ids=task.assignees or [],
            type="task_updated",
            title="Status da tarefa atualizado",
            message=f'Tarefa "{task.title}" mudou para {status}',
            entity_type="task",
            entity_id=task.id,
            exclude=[current_user.id],
        )

    return task.id


def update_task(db: Session, identity: Identity | None, task_id: int, changes: Mapping[str, Any]) -> int:
    task, project, current_user = _load_task_context(db, identity, task_id)

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Campos não editáveis: {', '.join(sorted(unknown))}")

    updates = dict(changes)
    if "title" in updates:
        if not (updates["title"] or "").strip():
            raise ValidationFailed("Título obrigatório")
        updates["title"] = updates["title"].strip()
    if "description" in updates:
        updates["description"] = updates["description"] or ""
    if "priority" in updates and updates["priority"] not in PRIORITIES:
        raise ValidationFailed(f"Prioridade inválida: {updates['priority']}")
    if "assignees" in updates:
        updates["assignees"] = _unique(int(value) for value in updates["assignees"] or [])
        load_tenant_users(db, task.tenant_id, updates["assignees"], error=InvalidAssignee)
    if "tags" in updates:
        updates["tags"] = _unique(updates["tags"])
    if "due_date" in updates:
        updates["due_date"] = to_naive_utc(updates["due_date"])
    if "parent_task_id" in updates:
        _resolve_parent(db, task, project, updates["parent_task_id"])

    before = {field: getattr(task, field) for field in updates}
    previous_assignees = set(task.assignees or [])

    with atomic(db):
        for field, value in updates.items():
            setattr(task, field, value)
        task.updated_at = utcnow()

        recompute_project_stats(db, project)
        log_activity(
            db,
            tenant_id=task.tenant_id,
            user_id=current_user.id,
            action="updated_task",
            entity_type="task",
            entity_id=task.id,
            before=before,
            after=updates,
        )
        if "assignees" in updates:
            notify(
                db,
                tenant_id=task.tenant_id,
                user_ids=[user_id for user_id in updates["assignees"] if user_id not in previous_assignees],
                type="task_assigned",
                title="Tarefa atribuída",
                message=f"Você foi atribuído à tarefa: {task.title}",
                entity_type="task",
                entity_id=task.id,
                exclude=[current_user.id],
            )

    return task.id
