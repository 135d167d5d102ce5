import pytest

from taskhouse.core.errors import (
    AuthenticationRequired,
    InsufficientPermissions,
    InvalidMention,
    NotFound,
    PermissionDenied,
)
from taskhouse.models.comment import Comment
from taskhouse.models.notification import Notification
from taskhouse.services.comments import add_comment
from taskhouse.services.notifications import (
    mark_all_notifications_read,
    mark_notification_read,
    notifications_for_user,
    unread_notification_count,
)
from taskhouse.services.tasks import create_task
from tests.fixtures_data import build_session_factory, identity_for, seed_workspaces


def _setup_with_task():
    db = build_session_factory()()
    data = seed_workspaces(db)
    acme = data.acme
    task_id = create_task(
        db,
        identity_for(acme.pm),
        tenant_id=acme.tenant.id,
        project_id=acme.project.id,
        title="Copy review",
        assignees=[acme.member.id],
    )
    db.query(Notification).delete()
    db.commit()
    return db, data, task_id


def test_duplicate_mentions_produce_one_notification_each():
    db, data, task_id = _setup_with_task()
    acme = data.acme

    comment_id = add_comment(
        db,
        identity_for(acme.pm),
        task_id,
        "Olhem isso",
        mentions=[acme.lead.id, acme.lead.id, acme.pm.id],
    )

    comment = db.query(Comment).filter(Comment.id == comment_id).one()
    assert comment.mentions == [acme.lead.id, acme.pm.id]

    notifications = db.query(Notification).order_by(Notification.id).all()
    assert [(n.user_id, n.type) for n in notifications] == [
        (acme.lead.id, "comment_mention"),
        (acme.member.id, "task_updated"),
    ]


def test_mentioned_assignee_is_notified_once():
    db, data, task_id = _setup_with_task()
    acme = data.acme

    add_comment(db, identity_for(acme.lead), task_id, "Pronto?", mentions=[acme.member.id])

    notifications = db.query(Notification).all()
    assert [(n.user_id, n.type) for n in notifications] == [(acme.member.id, "comment_mention")]


def test_mention_from_other_tenant_is_rejected():
    db, data, task_id = _setup_with_task()

    with pytest.raises(InvalidMention):
        add_comment(db, identity_for(data.acme.pm), task_id, "Oi", mentions=[data.globex.member.id])

    assert db.query(Comment).count() == 0
    assert db.query(Notification).count() == 0


def test_client_cannot_comment_and_outsider_is_denied():
    db, data, task_id = _setup_with_task()

    with pytest.raises(InsufficientPermissions):
        add_comment(db, identity_for(data.acme.client), task_id, "Oi")
    with pytest.raises(PermissionDenied):
        add_comment(db, identity_for(data.acme.outsider), task_id, "Oi")


def test_comment_on_missing_task_is_not_found():
    db, data, _task_id = _setup_with_task()

    with pytest.raises(NotFound):
        add_comment(db, identity_for(data.acme.pm), 4242, "Oi")


def test_notifications_are_private_to_owner_or_admin():
    db, data, task_id = _setup_with_task()
    acme = data.acme
    add_comment(db, identity_for(acme.pm), task_id, "Veja", mentions=[acme.lead.id])

    own = notifications_for_user(db, identity_for(acme.lead), acme.tenant.id, acme.lead.id)
    assert [entry["type"] for entry in own] == ["comment_mention"]

    as_admin = notifications_for_user(db, identity_for(acme.admin), acme.tenant.id, acme.lead.id)
    assert len(as_admin) == 1

    with pytest.raises(PermissionDenied):
        notifications_for_user(db, identity_for(acme.member), acme.tenant.id, acme.lead.id)


def test_mark_read_and_mark_all_read():
    db, data, task_id = _setup_with_task()
    acme = data.acme
    add_comment(db, identity_for(acme.pm), task_id, "Um", mentions=[acme.lead.id])
    add_comment(db, identity_for(acme.pm), task_id, "Dois", mentions=[acme.lead.id])
    add_comment(db, identity_for(acme.pm), task_id, "Três", mentions=[acme.lead.id])
    lead = identity_for(acme.lead)

    assert unread_notification_count(db, lead, acme.tenant.id, acme.lead.id) == 3

    first = db.query(Notification).filter(Notification.user_id == acme.lead.id).first()
    mark_notification_read(db, lead, first.id)
    assert unread_notification_count(db, lead, acme.tenant.id, acme.lead.id) == 2

    with pytest.raises(PermissionDenied):
        mark_notification_read(db, identity_for(acme.member), first.id)

    assert mark_all_notifications_read(db, lead, acme.tenant.id, acme.lead.id) == 2
    assert unread_notification_count(db, lead, acme.tenant.id, acme.lead.id) == 0


def test_notification_ids_do_not_leak_existence():
    db, data, task_id = _setup_with_task()
    acme = data.acme
    add_comment(db, identity_for(acme.pm), task_id, "Oi", mentions=[acme.lead.id])
    notification = db.query(Notification).filter(Notification.user_id == acme.lead.id).one()

    for target in (notification.id, 9999):
        with pytest.raises(AuthenticationRequired):
            mark_notification_read(db, None, target)
    with pytest.raises(NotFound):
        mark_notification_read(db, identity_for(data.globex.admin), notification.id)
