import pytest

from taskhouse.core.errors import InsufficientPermissions, InvalidReference, PermissionDenied, ValidationFailed
from taskhouse.models.activity_log import ActivityLog
from taskhouse.models.notification import Notification
from taskhouse.models.project import Project
from taskhouse.models.project_stats import ProjectStats
from taskhouse.services.projects import create_project, update_project
from tests.fixtures_data import build_session_factory, identity_for, seed_workspaces


def _setup():
    db = build_session_factory()()
    return db, seed_workspaces(db)


def test_create_project_starts_in_planning_with_zeroed_stats():
    db, data = _setup()
    acme = data.acme

    project_id = create_project(
        db,
        identity_for(acme.admin),
        tenant_id=acme.tenant.id,
        title="  App mobile ",
        manager_id=acme.pm.id,
        team_members=[acme.member.id, acme.member.id, acme.lead.id],
    )

    project = db.query(Project).filter(Project.id == project_id).one()
    assert project.title == "App mobile"
    assert project.status == "Planning"
    assert project.team_members == [acme.member.id, acme.lead.id]

    stats = db.query(ProjectStats).filter(ProjectStats.project_id == project_id).one()
    assert (stats.total_tasks, stats.completed_tasks, stats.completion_rate) == (0, 0, 0.0)

    recipients = sorted(n.user_id for n in db.query(Notification).all())
    assert recipients == sorted([acme.member.id, acme.lead.id])


def test_manager_must_hold_manager_role():
    db, data = _setup()
    acme = data.acme

    with pytest.raises(InvalidReference):
        create_project(db, identity_for(acme.admin), tenant_id=acme.tenant.id, title="X", manager_id=acme.member.id)


def test_team_member_from_other_tenant_is_rejected():
    db, data = _setup()
    acme = data.acme

    with pytest.raises(InvalidReference):
        create_project(
            db,
            identity_for(acme.pm),
            tenant_id=acme.tenant.id,
            title="X",
            manager_id=acme.pm.id,
            team_members=[data.globex.member.id],
        )
    assert db.query(Project).count() == 1


def test_team_lead_cannot_create_projects():
    db, data = _setup()
    acme = data.acme

    with pytest.raises(InsufficientPermissions):
        create_project(db, identity_for(acme.lead), tenant_id=acme.tenant.id, title="X", manager_id=acme.lead.id)


def test_team_lead_edits_only_projects_they_manage():
    db, data = _setup()
    acme = data.acme

    with pytest.raises(PermissionDenied):
        update_project(db, identity_for(acme.lead), acme.project.id, {"title": "Novo"})

    acme.project.manager_id = acme.lead.id
    db.commit()
    update_project(db, identity_for(acme.lead), acme.project.id, {"title": "Novo"})
    assert db.query(Project).filter(Project.id == acme.project.id).one().title == "Novo"


def test_completing_project_sets_and_clears_completed_at():
    db, data = _setup()
    acme = data.acme
    admin = identity_for(acme.admin)

    update_project(db, admin, acme.project.id, {"status": "Completed"})
    assert db.query(Project).filter(Project.id == acme.project.id).one().completed_at is not None

    update_project(db, admin, acme.project.id, {"status": "Active"})
    assert db.query(Project).filter(Project.id == acme.project.id).one().completed_at is None


def test_update_project_logs_before_and_after_and_rejects_bad_status():
    db, data = _setup()
    acme = data.acme

    update_project(db, identity_for(acme.pm), acme.project.id, {"priority": "Low"})
    entry = db.query(ActivityLog).filter(ActivityLog.action == "updated_project").one()
    assert entry.details["before"] == {"priority": "High"}
    assert entry.details["after"] == {"priority": "Low"}

    with pytest.raises(ValidationFailed):
        update_project(db, identity_for(acme.pm), acme.project.id, {"status": "Paused"})
