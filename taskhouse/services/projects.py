from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from sqlalchemy.orm import Session

from taskhouse.core.clock import to_naive_utc, utcnow
from taskhouse.core.database import atomic
from taskhouse.core.errors import InvalidReference, NotFound, PermissionDenied, ValidationFailed
from taskhouse.core.permissions import MANAGER_ROLES, ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_TEAM_LEAD
from taskhouse.models.project import PRIORITIES, PROJECT_STATUSES, Project
from taskhouse.services.activity_log import log_activity
from taskhouse.services.identity import (
    Identity,
    get_tenant_user,
    load_tenant_users,
    resolve_caller,
    resolve_current_user,
)
from taskhouse.services.notifications import notify
from taskhouse.services.project_stats import recompute_project_stats

logger = logging.getLogger(__name__)

PROJECT_CREATOR_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER)
PROJECT_EDITOR_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_TEAM_LEAD)
UPDATABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "start_date",
    "due_date",
    "manager_id",
    "team_members",
    "client_id",
)


def get_project(db: Session, tenant_id: int, project_id: int) -> Project:
    project = (
        db.query(Project)
        .filter(Project.id == project_id, Project.tenant_id == tenant_id)
        .first()
    )
    if project is None:
        raise NotFound("Projeto não encontrado")
    return project


def _unique_ids(values: Iterable[int] | None) -> list[int]:
    seen: list[int] = []
    for value in values or []:
        if int(value) not in seen:
            seen.append(int(value))
    return seen


def _validate_manager(db: Session, tenant_id: int, manager_id: int) -> None:
    manager = get_tenant_user(db, tenant_id, manager_id)
    if manager is None:
        raise InvalidReference("Gerente de projeto inválido")
    if manager.role not in MANAGER_ROLES:
        raise InvalidReference("O gerente deve ter papel Admin, ProjectManager ou TeamLead")


def _validate_client(db: Session, tenant_id: int, client_id: int | None) -> None:
    if client_id is not None and get_tenant_user(db, tenant_id, client_id) is None:
        raise InvalidReference("Cliente inválido")


def _check_choice(value: str, allowed: tuple[str, ...], label: str) -> None:
    if value not in allowed:
        raise ValidationFailed(f"{label} inválido: {value}")


def create_project(
    db: Session,
    identity: Identity | None,
    *,
    tenant_id: int,
    title: str,
    description: str = "",
    priority: str = "Medium",
    due_date: datetime | None = None,
    start_date: datetime | None = None,
    manager_id: int,
    team_members: Iterable[int] = (),
    client_id: int | None = None,
) -> int:
    current_user = resolve_current_user(db, identity, tenant_id, PROJECT_CREATOR_ROLES)
    _check_choice(priority, PRIORITIES, "Prioridade")

    members = _unique_ids(team_members)
    _validate_manager(db, tenant_id, manager_id)
    load_tenant_users(db, tenant_id, members, detail="Membro de equipe inválido")
    _validate_client(db, tenant_id, client_id)

    with atomic(db):
        project = Project(
            tenant_id=tenant_id,
            title=title.strip(),
            description=description or "",
            status="Planning",
            priority=priority,
            start_date=to_naive_utc(start_date),
            due_date=to_naive_utc(due_date),
            manager_id=manager_id,
            team_members=members,
            client_id=client_id,
        )
        db.add(project)
        db.flush()

        recompute_project_stats(db, project)
        log_activity(
            db,
            tenant_id=tenant_id,
            user_id=current_user.id,
            action="created_project",
            entity_type="project",
            entity_id=project.id,
            after={"title": project.title, "manager_id": manager_id},
        )
        notify(
            db,
            tenant_id=tenant_id,
            user_ids=members,
            type="project_updated",
            title="Adicionado ao projeto",
            message=f"Você foi adicionado ao projeto: {project.title}",
            entity_type="project",
            entity_id=project.id,
        )

    logger.info("project created project_id=%s tenant_id=%s", project.id, tenant_id)
    return project.id


def update_project(
    db: Session,
    identity: Identity | None,
    project_id: int,
    changes: Mapping[str, Any],
) -> int:
    current_user = resolve_caller(db, identity, PROJECT_EDITOR_ROLES)
    project = get_project(db, current_user.tenant_id, project_id)
    if current_user.role == ROLE_TEAM_LEAD and project.manager_id != current_user.id:
        raise PermissionDenied("Team leads só podem editar projetos que gerenciam")

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
    if "status" in updates:
        _check_choice(updates["status"], PROJECT_STATUSES, "Status")
    if "priority" in updates:
        _check_choice(updates["priority"], PRIORITIES, "Prioridade")
    if "manager_id" in updates:
        if updates["manager_id"] is None:
            raise ValidationFailed("Projeto precisa de um gerente")
        _validate_manager(db, project.tenant_id, updates["manager_id"])
    if "team_members" in updates:
        updates["team_members"] = _unique_ids(updates["team_members"])
        load_tenant_users(db, project.tenant_id, updates["team_members"], detail="Membro de equipe inválido")
    if "client_id" in updates:
        _validate_client(db, project.tenant_id, updates["client_id"])
    for field in ("start_date", "due_date"):
        if field in updates:
            updates[field] = to_naive_utc(updates[field])

    before = {field: getattr(project, field) for field in updates}
    previous_members = set(project.team_members or [])

    with atomic(db):
        for field, value in updates.items():
            setattr(project, field, value)
        if "status" in updates:
            if updates["status"] == "Completed" and before["status"] != "Completed":
                project.completed_at = utcnow()
            elif updates["status"] != "Completed":
                project.completed_at = None
        project.updated_at = utcnow()

        log_activity(
            db,
            tenant_id=project.tenant_id,
            user_id=current_user.id,
            action="updated_project",
            entity_type="project",
            entity_id=project.id,
            before=before,
            after=updates,
        )
        if "team_members" in updates:
            notify(
                db,
                tenant_id=project.tenant_id,
                user_ids=[member for member in updates["team_members"] if member not in previous_members],
                type="project_updated",
                title="Adicionado ao projeto",
                message=f"Você foi adicionado ao projeto: {project.title}",
                entity_type="project",
                entity_id=project.id,
                exclude=[current_user.id],
            )

    return project.id
