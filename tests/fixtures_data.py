"""Conjunto de dados reutilizável para cenários de teste backend."""
from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskhouse.core.database import Base
import taskhouse.models  # noqa: F401
from taskhouse.models.project import Project
from taskhouse.models.tenant import Tenant
from taskhouse.models.user import User
from taskhouse.services.identity import Identity

ACME_USERS = {
    "admin": ("Ana Admin", "admin@acme.test", "Admin"),
    "pm": ("Paulo PM", "pm@acme.test", "ProjectManager"),
    "lead": ("Lia Lead", "lead@acme.test", "TeamLead"),
    "member": ("Marcos Member", "member@acme.test", "Member"),
    "outsider": ("Olga Outsider", "outsider@acme.test", "Member"),
    "client": ("Carla Client", "client@acme.test", "Client"),
}

GLOBEX_USERS = {
    "admin": ("Gil Admin", "admin@globex.test", "Admin"),
    "member": ("Gabi Member", "member@globex.test", "Member"),
}

SIGNUP_PAYLOAD = {
    "name": "Acme Studio",
    "admin_name": "Ana Admin",
    "admin_email": "ana@example.com",
    "admin_password": "s3nha-segura",
}


def build_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _seed_tenant(db: Session, name: str, slug: str, users: dict) -> SimpleNamespace:
    tenant = Tenant(name=name, slug=slug, branding={}, settings={})
    db.add(tenant)
    db.flush()

    seeded = SimpleNamespace(tenant=tenant)
    for key, (user_name, email, role) in users.items():
        user = User(tenant_id=tenant.id, name=user_name, email=email, role=role, is_active=True)
        db.add(user)
        db.flush()
        setattr(seeded, key, user)
    return seeded


def seed_workspaces(db: Session) -> SimpleNamespace:
    """Two tenants plus one Acme project managed by the PM, with lead and member on the team."""
    acme = _seed_tenant(db, "Acme", "acme", ACME_USERS)
    globex = _seed_tenant(db, "Globex", "globex", GLOBEX_USERS)

    project = Project(
        tenant_id=acme.tenant.id,
        title="Website",
        description="",
        status="Active",
        priority="High",
        manager_id=acme.pm.id,
        team_members=[acme.lead.id, acme.member.id],
        client_id=acme.client.id,
    )
    db.add(project)
    db.commit()

    acme.project = project
    return SimpleNamespace(acme=acme, globex=globex)


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, tenant_id=user.tenant_id, email=user.email)
