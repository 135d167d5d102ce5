from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (Index("ix_invitations_tenant_email", "tenant_id", "email"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    email = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)
    invited_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    token = Column(String(128), nullable=False, unique=True, index=True)

    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def is_expired(self, now) -> bool:
        return self.expires_at <= now
