from datetime import timedelta

import pytest

from taskhouse.core.clock import utcnow
from taskhouse.core.errors import InsufficientPermissions, PermissionDenied
from taskhouse.services import queries
from taskhouse.services.comments import add_comment
from taskhouse.services.tasks import create_task, update_task, update_task_status
from tests.fixtures_data import build_session_factory, identity_for, seed_workspaces


def _setup_with_tasks():
    db = build_session_factory()()
    data = seed_workspaces(db)
    acme = data.acme
    pm = identity_for(acme.pm)

    def _task(title, assignees, priority="Medium", due_date=None):
        return create_task(
            db,
            pm,
            tenant_id=acme.tenant.id,
            project_id=acme.project.id,
            title=title,
            assignees=assignees,
            priority=priority,
            due_date=due_date,
        )

    ids = [
        _task("A", [acme.member.id], "High"),
        _task("B", [acme.member.id, acme.lead.id]),
        _task("C", [acme.lead.id], "Low", due_date=utcnow() - timedelta(days=1)),
    ]
    update_task_status(db, pm, ids[0], "Done")
    update_task_status(db, pm, ids[1], "InProgress")
    return db, data, ids


def test_project_overview_shape_and_team_performance():
    db, data, _ids = _setup_with_tasks()
    acme = data.acme

    overview = queries.project_overview(db, identity_for(acme.client), acme.tenant.id, acme.project.id)

    assert overview["project"]["manager"] == {
        "id": acme.pm.id,
        "name": acme.pm.name,
        "email": acme.pm.email,
        "avatar_url": None,
    }
    assert overview["project"]["client"]["id"] == acme.client.id
    assert [member["id"] for member in overview["project"]["team_members"]] == [acme.lead.id, acme.member.id]

    stats = overview["stats"]
    assert (stats["total_tasks"], stats["completed_tasks"], stats["in_progress_tasks"]) == (3, 1, 1)
    assert stats["overdue_tasks"] == 1
    assert stats["completion_rate"] == pytest.approx(100 / 3)

    assert overview["tasks_by_status"] == {"ToDo": 1, "InProgress": 1, "Review": 0, "Done": 1}
    assert overview["tasks_by_priority"] == {"Low": 1, "Medium": 1, "High": 1}

    performance = {entry["user"]["id"]: entry for entry in overview["team_performance"]}
    assert performance[acme.member.id]["total_tasks"] == 2
    assert performance[acme.member.id]["completion_rate"] == 50.0
    assert performance[acme.lead.id]["completed_tasks"] == 0


def test_project_reads_require_visibility():
    db, data, _ids = _setup_with_tasks()
    acme = data.acme

    with pytest.raises(PermissionDenied):
        queries.project_overview(db, identity_for(acme.outsider), acme.tenant.id, acme.project.id)
    with pytest.raises(PermissionDenied):
        queries.tasks_by_project(db, identity_for(acme.outsider), acme.tenant.id, acme.project.id)


def test_tasks_by_project_embeds_user_summaries():
    db, data, _ids = _setup_with_tasks()
    acme = data.acme

    tasks = queries.tasks_by_project(db, identity_for(acme.member), acme.tenant.id, acme.project.id)

    assert [task["title"] for task in tasks] == ["A", "B", "C"]
    assert [user["id"] for user in tasks[1]["assignees"]] == [acme.member.id, acme.lead.id]
    assert tasks[0]["created_by"]["email"] == acme.pm.email


def test_task_by_id_includes_comments_and_missing_is_none():
    db, data, ids = _setup_with_tasks()
    acme = data.acme
    add_comment(db, identity_for(acme.lead), ids[1], "Primeiro")
    add_comment(db, identity_for(acme.member), ids[1], "Segundo")

    task = queries.task_by_id(db, identity_for(acme.admin), ids[1])

    assert [comment["content"] for comment in task["comments"]] == ["Primeiro", "Segundo"]
    assert task["comments"][0]["author"]["id"] == acme.lead.id
    assert queries.task_by_id(db, identity_for(acme.admin), 9999) is None


def test_assignee_outside_team_reads_only_assigned_tasks():
    db, data, ids = _setup_with_tasks()
    acme = data.acme
    update_task(db, identity_for(acme.pm), ids[2], {"assignees": [acme.lead.id, acme.outsider.id]})
    outsider = identity_for(acme.outsider)
    update_task_status(db, outsider, ids[2], "InProgress")

    task = queries.task_by_id(db, outsider, ids[2])
    visible = queries.tasks_by_project(db, outsider, acme.tenant.id, acme.project.id)

    assert task["status"] == "InProgress"
    assert [entry["id"] for entry in visible] == [ids[2]]
    with pytest.raises(PermissionDenied):
        queries.task_by_id(db, outsider, ids[0])
    with pytest.raises(PermissionDenied):
        queries.project_overview(db, outsider, acme.tenant.id, acme.project.id)


def test_task_ids_from_another_tenant_read_as_missing():
    db, data, ids = _setup_with_tasks()

    assert queries.task_by_id(db, identity_for(data.globex.admin), ids[0]) is None


def test_tenant_overview_totals():
    db, data, _ids = _setup_with_tasks()
    acme = data.acme

    overview = queries.tenant_overview(db, identity_for(acme.member), acme.tenant.id)

    assert overview["totals"] == {
        "total_projects": 1,
        "active_projects": 1,
        "completed_projects": 0,
        "total_tasks": 3,
        "completed_tasks": 1,
        "overdue_tasks": 1,
    }
    assert overview["projects_by_status"]["Active"] == 1
    assert overview["completion_rate"] == pytest.approx(100 / 3)


def test_list_projects_filters_by_visibility():
    db, data, _ids = _setup_with_tasks()
    acme = data.acme

    assert [p["title"] for p in queries.list_projects(db, identity_for(acme.member), acme.tenant.id)] == ["Website"]
    assert queries.list_projects(db, identity_for(acme.outsider), acme.tenant.id) == []
    assert queries.list_projects(db, identity_for(acme.admin), acme.tenant.id, status="Archived") == []


def test_activity_feed_requires_reporting_permission():
    db, data, ids = _setup_with_tasks()
    acme = data.acme

    feed = queries.activity_for_tenant(db, identity_for(acme.admin), acme.tenant.id, entity_type="task", entity_id=ids[0])
    assert [entry["action"] for entry in feed] == ["updated_task_status", "created_task"]
    assert feed[0]["user"]["id"] == acme.pm.id

    with pytest.raises(InsufficientPermissions):
        queries.activity_for_tenant(db, identity_for(acme.member), acme.tenant.id)
