from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base

NOTIFICATION_TYPES = (
    "task_assigned",
    "task_updated",
    "comment_mention",
    "project_updated",
    "deadline_approaching",
)


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_read", "user_id", "is_read"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    type = Column(String(32), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    entity_type = Column(String(20), nullable=True)
    entity_id = Column(Integer, nullable=True)

    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
