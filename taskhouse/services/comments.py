from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from taskhouse.core.database import atomic
from taskhouse.core.errors import InvalidMention, NotFound, PermissionDenied, ValidationFailed
from taskhouse.core.permissions import CONTRIBUTOR_ROLES, is_project_participant
from taskhouse.models.comment import Comment
from taskhouse.models.project import Project
from taskhouse.models.task import Task
from taskhouse.services.activity_log import log_activity
from taskhouse.services.identity import Identity, load_tenant_users, resolve_caller
from taskhouse.services.notifications import notify


def add_comment(
    db: Session,
    identity: Identity | None,
    task_id: int,
    content: str,
    mentions: Iterable[int] = (),
) -> int:
    current_user = resolve_caller(db, identity, CONTRIBUTOR_ROLES)
    task = db.query(Task).filter(Task.id == task_id, Task.tenant_id == current_user.tenant_id).first()
    if task is None:
        raise NotFound("Tarefa não encontrada")

    project = (
        db.query(Project)
        .filter(Project.id == task.project_id, Project.tenant_id == task.tenant_id)
        .first()
    )
    if not is_project_participant(current_user.role, current_user.id, project, task):
        raise PermissionDenied("Você não tem permissão para comentar nesta tarefa")

    if not (content or "").strip():
        raise ValidationFailed("Comentário vazio")

    mention_ids: list[int] = []
    for mention in mentions:
        if int(mention) not in mention_ids:
            mention_ids.append(int(mention))
    load_tenant_users(db, task.tenant_id, mention_ids, error=InvalidMention)

    with atomic(db):
        comment = Comment(
            tenant_id=task.tenant_id,
            task_id=task.id,
            author_id=current_user.id,
            content=content,
            mentions=mention_ids,
        )
        db.add(comment)
        db.flush()

        log_activity(
            db,
            tenant_id=task.tenant_id,
            user_id=current_user.id,
            action="added_comment",
            entity_type="task",
            entity_id=task.id,
            after={"comment_id": comment.id, "mentions": mention_ids},
        )
        mentioned = notify(
            db,
            tenant_id=task.tenant_id,
            user_ids=mention_ids,
            type="comment_mention",
            title="Mencionado em comentário",
            message=f'{current_user.name} mencionou você em um comentário em "{task.title}"',
            entity_type="task",
            entity_id=task.id,
            exclude=[current_user.id],
        )
        notify(
            db,
            tenant_id=task.tenant_id,
            user_ids=task.assignees or [],
            type="task_updated",
            title="Novo comentário",
            message=f'{current_user.name} comentou em "{task.title}"',
            entity_type="task",
            entity_id=task.id,
            exclude=[current_user.id, *mentioned],
        )

    return comment.id
