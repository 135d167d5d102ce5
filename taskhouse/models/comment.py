from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base
from taskhouse.models.types import JSONType


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    content = Column(Text, nullable=False)
    mentions = Column(JSONType, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
