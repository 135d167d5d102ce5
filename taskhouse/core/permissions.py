"""Role-based access control for tenant users.

The role -> permission table is plain data so it can be audited and tested
exhaustively. Bump ``PERMISSIONS_VERSION`` whenever the table changes.
"""
from __future__ import annotations

from typing import Any, Iterable

ROLE_ADMIN = "Admin"
ROLE_PROJECT_MANAGER = "ProjectManager"
ROLE_TEAM_LEAD = "TeamLead"
ROLE_MEMBER = "Member"
ROLE_CLIENT = "Client"

ALL_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_TEAM_LEAD, ROLE_MEMBER, ROLE_CLIENT)
CONTRIBUTOR_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_TEAM_LEAD, ROLE_MEMBER)
MANAGER_ROLES = (ROLE_ADMIN, ROLE_PROJECT_MANAGER, ROLE_TEAM_LEAD)

PERMISSIONS_VERSION = 1

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_ADMIN: frozenset(
        {"manage_tenant", "manage_users", "manage_all_projects", "manage_all_tasks", "view_reports"}
    ),
    ROLE_PROJECT_MANAGER: frozenset(
        {"create_projects", "manage_assigned_projects", "assign_tasks", "view_team_reports"}
    ),
    ROLE_TEAM_LEAD: frozenset({"manage_team_tasks", "review_tasks", "comment_on_tasks"}),
    ROLE_MEMBER: frozenset({"view_assigned_tasks", "update_task_status", "comment_on_tasks"}),
    ROLE_CLIENT: frozenset({"view_assigned_projects", "comment_on_tasks"}),
}

ALL_PERMISSIONS = frozenset().union(*ROLE_PERMISSIONS.values())

ROLE_HIERARCHY: dict[str, int] = {
    ROLE_ADMIN: 5,
    ROLE_PROJECT_MANAGER: 4,
    ROLE_TEAM_LEAD: 3,
    ROLE_MEMBER: 2,
    ROLE_CLIENT: 1,
}


def has_permission(role: str | None, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role or "", frozenset())


def _ids(values: Iterable[Any] | None) -> set[int]:
    return {int(value) for value in values or []}


def can_manage_project(role: str, user_id: int, project: Any) -> bool:
    if has_permission(role, "manage_all_projects"):
        return True
    return has_permission(role, "manage_assigned_projects") and user_id == project.manager_id


def can_manage_task(role: str, user_id: int, task: Any, project: Any) -> bool:
    if has_permission(role, "manage_all_tasks"):
        return True
    if has_permission(role, "manage_assigned_projects") and user_id == project.manager_id:
        return True
    return has_permission(role, "manage_team_tasks") and user_id in _ids(task.assignees)


def can_view_project(role: str, user_id: int, project: Any) -> bool:
    if has_permission(role, "manage_all_projects"):
        return True
    if user_id == project.manager_id or user_id in _ids(project.team_members):
        return True
    return (
        project.client_id is not None
        and user_id == project.client_id
        and has_permission(role, "view_assigned_projects")
    )


def can_assign_role(assigner_role: str, target_role: str) -> bool:
    assigner_rank = ROLE_HIERARCHY.get(assigner_role)
    target_rank = ROLE_HIERARCHY.get(target_role)
    if assigner_rank is None or target_rank is None:
        return False
    return assigner_rank > target_rank


def is_project_participant(role: str, user_id: int, project: Any, task: Any = None) -> bool:
    """Admin, project manager, team member or (when ``task`` is given) one of its assignees."""
    if role == ROLE_ADMIN:
        return True
    if project is not None and (user_id == project.manager_id or user_id in _ids(project.team_members)):
        return True
    return task is not None and user_id in _ids(task.assignees)


def can_view_task(role: str, user_id: int, project: Any, task: Any) -> bool:
    """Project visibility, or assignment to ``task`` for roles that can work on assigned tasks."""
    if can_view_project(role, user_id, project):
        return True
    if user_id not in _ids(task.assignees):
        return False
    return has_permission(role, "view_assigned_tasks") or ROLE_HIERARCHY.get(role, 0) > ROLE_HIERARCHY[ROLE_MEMBER]
