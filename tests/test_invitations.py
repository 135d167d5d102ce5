from datetime import timedelta

import pytest

from taskhouse.core.clock import utcnow
from taskhouse.core.errors import (
    AlreadyAccepted,
    Conflict,
    Expired,
    InsufficientPermissions,
    InvalidToken,
    ValidationFailed,
)
from taskhouse.models.invitation import Invitation
from taskhouse.models.user import User
from taskhouse.services.invitations import accept_invite, invite_user
from taskhouse.services.passwords import verify_password
from tests.fixtures_data import build_session_factory, identity_for, seed_workspaces


def _setup():
    db = build_session_factory()()
    return db, seed_workspaces(db)


def test_invite_and_accept_creates_user_with_invited_role():
    db, data = _setup()
    acme = data.acme

    invite = invite_user(db, identity_for(acme.admin), acme.tenant.id, "Nova@Acme.test", "TeamLead")
    result = accept_invite(db, invite["token"], "Nina Nova", "senha-forte-123")

    user = db.query(User).filter(User.id == result["user_id"]).one()
    assert result["tenant_id"] == acme.tenant.id
    assert user.email == "nova@acme.test"
    assert user.role == "TeamLead"
    assert verify_password("senha-forte-123", user.password_hash) is True

    invitation = db.query(Invitation).filter(Invitation.id == invite["invitation_id"]).one()
    assert invitation.accepted_at is not None
    assert invitation.expires_at > utcnow() + timedelta(days=6)


def test_second_accept_is_already_accepted():
    db, data = _setup()
    invite = invite_user(db, identity_for(data.acme.admin), data.acme.tenant.id, "dup@acme.test", "Member")
    accept_invite(db, invite["token"], "Dup", "senha-forte-123")

    with pytest.raises(AlreadyAccepted):
        accept_invite(db, invite["token"], "Dup", "senha-forte-123")


def test_expired_invitation_is_rejected():
    db, data = _setup()
    invite = invite_user(db, identity_for(data.acme.admin), data.acme.tenant.id, "late@acme.test", "Member")
    invitation = db.query(Invitation).filter(Invitation.id == invite["invitation_id"]).one()
    invitation.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(Expired) as exc:
        accept_invite(db, invite["token"], "Late", "senha-forte-123")

    assert exc.value.status_code == 410
    assert db.query(User).filter(User.email == "late@acme.test").count() == 0


def test_unknown_token_is_invalid():
    db, _data = _setup()

    with pytest.raises(InvalidToken):
        accept_invite(db, "nao-existe", "X", "senha-forte-123")


def test_inviting_existing_user_or_pending_email_conflicts():
    db, data = _setup()
    acme = data.acme
    admin = identity_for(acme.admin)

    with pytest.raises(Conflict):
        invite_user(db, admin, acme.tenant.id, acme.member.email.upper(), "Member")

    invite_user(db, admin, acme.tenant.id, "pending@acme.test", "Member")
    with pytest.raises(Conflict):
        invite_user(db, admin, acme.tenant.id, "pending@acme.test", "Client")


def test_project_manager_cannot_invite_equal_or_higher_role():
    db, data = _setup()
    acme = data.acme

    with pytest.raises(InsufficientPermissions):
        invite_user(db, identity_for(acme.pm), acme.tenant.id, "boss@acme.test", "Admin")
    with pytest.raises(InsufficientPermissions):
        invite_user(db, identity_for(acme.member), acme.tenant.id, "friend@acme.test", "Client")

    assert invite_user(db, identity_for(acme.pm), acme.tenant.id, "dev@example.com", "Member")["token"]


def test_short_password_is_rejected_on_accept():
    db, data = _setup()
    invite = invite_user(db, identity_for(data.acme.admin), data.acme.tenant.id, "short@acme.test", "Member")

    with pytest.raises(ValidationFailed):
        accept_invite(db, invite["token"], "Short", "123")
