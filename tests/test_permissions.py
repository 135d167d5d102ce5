from types import SimpleNamespace

import pytest

from taskhouse.core.permissions import (
    ALL_PERMISSIONS,
    ALL_ROLES,
    PERMISSIONS_VERSION,
    ROLE_PERMISSIONS,
    can_assign_role,
    can_manage_project,
    can_manage_task,
    can_view_project,
    can_view_task,
    has_permission,
    is_project_participant,
)

EXPECTED_TABLE = {
    "Admin": {"manage_tenant", "manage_users", "manage_all_projects", "manage_all_tasks", "view_reports"},
    "ProjectManager": {"create_projects", "manage_assigned_projects", "assign_tasks", "view_team_reports"},
    "TeamLead": {"manage_team_tasks", "review_tasks", "comment_on_tasks"},
    "Member": {"view_assigned_tasks", "update_task_status", "comment_on_tasks"},
    "Client": {"view_assigned_projects", "comment_on_tasks"},
}


def _project(manager_id=10, team_members=(20, 30), client_id=40):
    return SimpleNamespace(manager_id=manager_id, team_members=list(team_members), client_id=client_id)


def test_permission_table_is_versioned_and_matches_roles():
    assert PERMISSIONS_VERSION == 1
    assert set(ROLE_PERMISSIONS) == set(ALL_ROLES)
    assert {role: set(perms) for role, perms in ROLE_PERMISSIONS.items()} == EXPECTED_TABLE


@pytest.mark.parametrize("role", ALL_ROLES)
def test_has_permission_is_exhaustive_over_table(role):
    for permission in ALL_PERMISSIONS:
        assert has_permission(role, permission) is (permission in EXPECTED_TABLE[role])


def test_unknown_role_has_no_permissions():
    assert has_permission("Owner", "manage_tenant") is False
    assert has_permission(None, "comment_on_tasks") is False


@pytest.mark.parametrize(
    "assigner,target,expected",
    [
        ("Admin", "ProjectManager", True),
        ("Admin", "Admin", False),
        ("ProjectManager", "TeamLead", True),
        ("ProjectManager", "ProjectManager", False),
        ("ProjectManager", "Admin", False),
        ("TeamLead", "Member", True),
        ("Member", "Client", True),
        ("Client", "Client", False),
        ("Admin", "Owner", False),
        ("Ghost", "Member", False),
    ],
)
def test_can_assign_role_requires_strictly_higher_rank(assigner, target, expected):
    assert can_assign_role(assigner, target) is expected


def test_can_manage_project_admin_or_own_project_manager():
    project = _project()
    assert can_manage_project("Admin", 999, project) is True
    assert can_manage_project("ProjectManager", 10, project) is True
    assert can_manage_project("ProjectManager", 11, project) is False
    assert can_manage_project("TeamLead", 10, project) is False


def test_can_manage_task_team_lead_needs_assignment():
    project = _project()
    task = SimpleNamespace(assignees=[30])
    assert can_manage_task("TeamLead", 30, task, project) is True
    assert can_manage_task("TeamLead", 20, task, project) is False
    assert can_manage_task("Member", 30, task, project) is False
    assert can_manage_task("ProjectManager", 10, task, project) is True
    assert can_manage_task("Admin", 1, task, project) is True


def test_can_view_project_covers_manager_team_and_client():
    project = _project()
    assert can_view_project("Admin", 1, project) is True
    assert can_view_project("ProjectManager", 10, project) is True
    assert can_view_project("Member", 20, project) is True
    assert can_view_project("Client", 40, project) is True
    assert can_view_project("Client", 41, project) is False
    assert can_view_project("Member", 99, project) is False


def test_project_participant_includes_task_assignees():
    project = _project()
    task = SimpleNamespace(assignees=[77])
    assert is_project_participant("Member", 77, project, task) is True
    assert is_project_participant("Member", 77, project) is False
    assert is_project_participant("Admin", 5, project) is True


def test_can_view_task_extends_project_visibility_to_assignees():
    project = _project()
    task = SimpleNamespace(assignees=[77, 88, 99])
    assert can_view_task("Member", 20, project, task) is True
    assert can_view_task("Member", 77, project, task) is True
    assert can_view_task("TeamLead", 88, project, task) is True
    assert can_view_task("Client", 99, project, task) is False
    assert can_view_task("Member", 55, project, task) is False
