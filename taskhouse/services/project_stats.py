from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.orm import Session

from taskhouse.core.clock import utcnow
from taskhouse.models.project import Project
from taskhouse.models.project_stats import ProjectStats
from taskhouse.models.task import Task


def is_overdue(task: Task, now: datetime) -> bool:
    return task.due_date is not None and task.due_date < now and task.status != "Done"


def completion_rate(completed: int, total: int) -> float:
    return (completed / total) * 100 if total > 0 else 0.0


def compute_task_counts(tasks: Iterable[Task], now: datetime | None = None) -> dict[str, Any]:
    now = now or utcnow()
    tasks = list(tasks)
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == "Done")
    return {
        "total_tasks": total,
        "completed_tasks": completed,
        "in_progress_tasks": sum(1 for task in tasks if task.status == "InProgress"),
        "overdue_tasks": sum(1 for task in tasks if is_overdue(task, now)),
        "completion_rate": completion_rate(completed, total),
    }


def recompute_project_stats(db: Session, project: Project) -> ProjectStats:
    """Rescan every task of ``project`` and overwrite its stats row.

    Counters are never patched incrementally; the row always reflects the task
    set visible to the current transaction.
    """
    db.flush()
    tasks = (
        db.query(Task)
        .filter(Task.tenant_id == project.tenant_id, Task.project_id == project.id)
        .all()
    )
    now = utcnow()
    counts = compute_task_counts(tasks, now)

    stats = db.query(ProjectStats).filter(ProjectStats.project_id == project.id).first()
    if stats is None:
        stats = ProjectStats(tenant_id=project.tenant_id, project_id=project.id)
        db.add(stats)

    for field, value in counts.items():
        setattr(stats, field, value)
    stats.last_updated = now
    return stats


def serialize_stats(stats: ProjectStats) -> dict[str, Any]:
    return {
        "project_id": stats.project_id,
        "total_tasks": stats.total_tasks,
        "completed_tasks": stats.completed_tasks,
        "in_progress_tasks": stats.in_progress_tasks,
        "overdue_tasks": stats.overdue_tasks,
        "completion_rate": stats.completion_rate,
        "last_updated": stats.last_updated,
    }
