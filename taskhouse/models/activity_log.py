from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base
from taskhouse.models.types import JSONType


class ActivityLog(Base):
    """Trilha de auditoria append-only: nunca atualizada nem removida."""

    __tablename__ = "activity_logs"
    __table_args__ = (Index("ix_activity_logs_entity", "entity_type", "entity_id"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(64), nullable=False)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(Integer, nullable=False)
    # {"before": ..., "after": ..., "metadata": ...}
    details = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)
