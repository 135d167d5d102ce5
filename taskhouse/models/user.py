from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    email = Column(String(255), nullable=False)
    name = Column(String(120), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    password_hash = Column(String, nullable=True)

    role = Column(String(32), nullable=False, default="Member")  # Admin | ProjectManager | TeamLead | Member | Client
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
