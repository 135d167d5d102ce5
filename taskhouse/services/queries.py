"""Read-side handlers.

Every handler resolves the caller again (all roles allowed) and returns plain
dicts. Referenced users are embedded as summaries loaded in one query per
result set.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from taskhouse.core.clock import utcnow
from taskhouse.core.config import ACTIVITY_PAGE_SIZE
from taskhouse.core.errors import InsufficientPermissions, PermissionDenied, ValidationFailed
from taskhouse.core.permissions import ALL_ROLES, can_view_project, can_view_task, has_permission
from taskhouse.models.activity_log import ActivityLog
from taskhouse.models.comment import Comment
from taskhouse.models.project import PRIORITIES, PROJECT_STATUSES, Project
from taskhouse.models.task import TASK_STATUSES, Task
from taskhouse.models.user import User
from taskhouse.services.identity import Identity, resolve_caller, resolve_current_user
from taskhouse.services.project_stats import completion_rate, compute_task_counts, is_overdue
from taskhouse.services.projects import get_project

logger = logging.getLogger(__name__)


def user_summary(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "avatar_url": user.avatar_url}


def user_summaries(db: Session, tenant_id: int, ids: Iterable[int]) -> dict[int, dict[str, Any]]:
    wanted = {int(user_id) for user_id in ids if user_id is not None}
    if not wanted:
        return {}
    users = db.query(User).filter(User.tenant_id == tenant_id, User.id.in_(wanted)).all()
    return {user.id: user_summary(user) for user in users}


def _ensure_can_view(user: User, project: Project) -> None:
    if not can_view_project(user.role, user.id, project):
        logger.warning(
            "Access denied (project_not_visible): user_id=%s user_role=%s project_id=%s",
            user.id,
            user.role,
            project.id,
        )
        raise PermissionDenied("Você não tem acesso a este projeto")


def _serialize_task(task: Task, summaries: dict[int, dict[str, Any]]) -> dict[str, Any]:
    return {
        "id": task.id,
        "tenant_id": task.tenant_id,
        "project_id": task.project_id,
        "parent_task_id": task.parent_task_id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "assignees": [summaries[user_id] for user_id in task.assignees or [] if user_id in summaries],
        "tags": list(task.tags or []),
        "created_by": summaries.get(task.created_by),
        "due_date": task.due_date,
        "completed_at": task.completed_at,
        "estimated_hours": task.estimated_hours,
        "actual_hours": task.actual_hours,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


def _task_user_ids(tasks: Iterable[Task]) -> set[int]:
    ids: set[int] = set()
    for task in tasks:
        ids.update(task.assignees or [])
        ids.add(task.created_by)
    return ids


def _serialize_project(project: Project, summaries: dict[int, dict[str, Any]]) -> dict[str, Any]:
    return {
        "id": project.id,
        "tenant_id": project.tenant_id,
        "title": project.title,
        "description": project.description,
        "status": project.status,
        "priority": project.priority,
        "start_date": project.start_date,
        "due_date": project.due_date,
        "completed_at": project.completed_at,
        "manager": summaries.get(project.manager_id),
        "team_members": [summaries[user_id] for user_id in project.team_members or [] if user_id in summaries],
        "client": summaries.get(project.client_id) if project.client_id is not None else None,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }


def _project_user_ids(project: Project) -> set[int]:
    ids = {project.manager_id, *(project.team_members or [])}
    if project.client_id is not None:
        ids.add(project.client_id)
    return ids


def tasks_by_project(db: Session, identity: Identity | None, tenant_id: int, project_id: int) -> list[dict[str, Any]]:
    """All tasks of a visible project; otherwise only the caller's assigned tasks in it."""
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    project = get_project(db, tenant_id, project_id)

    tasks = (
        db.query(Task)
        .filter(Task.tenant_id == tenant_id, Task.project_id == project.id)
        .order_by(Task.created_at.asc(), Task.id.asc())
        .all()
    )
    if not can_view_project(current_user.role, current_user.id, project):
        tasks = [task for task in tasks if can_view_task(current_user.role, current_user.id, project, task)]
        if not tasks:
            _ensure_can_view(current_user, project)

    summaries = user_summaries(db, tenant_id, _task_user_ids(tasks))
    return [_serialize_task(task, summaries) for task in tasks]


def task_by_id(db: Session, identity: Identity | None, task_id: int) -> dict[str, Any] | None:
    current_user = resolve_caller(db, identity, ALL_ROLES)
    task = db.query(Task).filter(Task.id == task_id, Task.tenant_id == current_user.tenant_id).first()
    if task is None:
        return None

    project = get_project(db, task.tenant_id, task.project_id)
    if not can_view_task(current_user.role, current_user.id, project, task):
        _ensure_can_view(current_user, project)

    comments = (
        db.query(Comment)
        .filter(Comment.tenant_id == task.tenant_id, Comment.task_id == task.id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    summaries = user_summaries(
        db,
        task.tenant_id,
        _task_user_ids([task]) | {comment.author_id for comment in comments},
    )

    result = _serialize_task(task, summaries)
    result["comments"] = [
        {
            "id": comment.id,
            "content": comment.content,
            "mentions": list(comment.mentions or []),
            "author": summaries.get(comment.author_id),
            "created_at": comment.created_at,
            "updated_at": comment.updated_at,
        }
        for comment in comments
    ]
    return result


def list_projects(
    db: Session,
    identity: Identity | None,
    tenant_id: int,
    status: str | None = None,
) -> list[dict[str, Any]]:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    if status is not None and status not in PROJECT_STATUSES:
        raise ValidationFailed(f"Status inválido: {status}")

    query = db.query(Project).filter(Project.tenant_id == tenant_id)
    if status is not None:
        query = query.filter(Project.status == status)
    projects = [
        project
        for project in query.order_by(Project.created_at.desc(), Project.id.desc()).all()
        if can_view_project(current_user.role, current_user.id, project)
    ]

    ids: set[int] = set()
    for project in projects:
        ids |= _project_user_ids(project)
    summaries = user_summaries(db, tenant_id, ids)
    return [_serialize_project(project, summaries) for project in projects]


def project_overview(db: Session, identity: Identity | None, tenant_id: int, project_id: int) -> dict[str, Any]:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    project = get_project(db, tenant_id, project_id)
    _ensure_can_view(current_user, project)

    tasks = db.query(Task).filter(Task.tenant_id == tenant_id, Task.project_id == project.id).all()
    now = utcnow()
    stats = compute_task_counts(tasks, now)
    stats["project_id"] = project.id
    stats["last_updated"] = now

    summaries = user_summaries(db, tenant_id, _project_user_ids(project))

    team_performance = []
    for member_id in project.team_members or []:
        member = summaries.get(member_id)
        if member is None:
            continue
        member_tasks = [task for task in tasks if member_id in (task.assignees or [])]
        completed = sum(1 for task in member_tasks if task.status == "Done")
        team_performance.append(
            {
                "user": member,
                "total_tasks": len(member_tasks),
                "completed_tasks": completed,
                "completion_rate": completion_rate(completed, len(member_tasks)),
            }
        )

    return {
        "project": _serialize_project(project, summaries),
        "stats": stats,
        "tasks_by_status": {status: sum(1 for task in tasks if task.status == status) for status in TASK_STATUSES},
        "tasks_by_priority": {
            priority: sum(1 for task in tasks if task.priority == priority) for priority in PRIORITIES
        },
        "team_performance": team_performance,
    }


def tenant_overview(db: Session, identity: Identity | None, tenant_id: int) -> dict[str, Any]:
    resolve_current_user(db, identity, tenant_id, ALL_ROLES)

    projects = db.query(Project).filter(Project.tenant_id == tenant_id).all()
    tasks = db.query(Task).filter(Task.tenant_id == tenant_id).all()
    now = utcnow()

    total_tasks = len(tasks)
    completed_tasks = sum(1 for task in tasks if task.status == "Done")
    projects_by_status = {
        status: sum(1 for project in projects if project.status == status) for status in PROJECT_STATUSES
    }
    return {
        "totals": {
            "total_projects": len(projects),
            "active_projects": projects_by_status["Active"],
            "completed_projects": projects_by_status["Completed"],
            "total_tasks": total_tasks,
            "completed_tasks": completed_tasks,
            "overdue_tasks": sum(1 for task in tasks if is_overdue(task, now)),
        },
        "projects_by_status": projects_by_status,
        "completion_rate": completion_rate(completed_tasks, total_tasks),
    }


def activity_for_tenant(
    db: Session,
    identity: Identity | None,
    tenant_id: int,
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = ACTIVITY_PAGE_SIZE,
) -> list[dict[str, Any]]:
    current_user = resolve_current_user(db, identity, tenant_id, ALL_ROLES)
    if not (has_permission(current_user.role, "view_reports") or has_permission(current_user.role, "view_team_reports")):
        raise InsufficientPermissions("Sem acesso aos relatórios de atividade")

    query = db.query(ActivityLog).filter(ActivityLog.tenant_id == tenant_id)
    if entity_type is not None:
        query = query.filter(ActivityLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(ActivityLog.entity_id == entity_id)
    entries = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()

    summaries = user_summaries(db, tenant_id, {entry.user_id for entry in entries})
    return [
        {
            "id": entry.id,
            "user": summaries.get(entry.user_id),
            "action": entry.action,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "details": entry.details or {},
            "created_at": entry.created_at,
        }
        for entry in entries
    ]
