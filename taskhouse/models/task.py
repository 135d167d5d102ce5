from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base
from taskhouse.models.types import JSONType

TASK_STATUSES = ("ToDo", "InProgress", "Review", "Done")


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_tenant_project", "tenant_id", "project_id"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    parent_task_id = Column(Integer, ForeignKey("tasks.id"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="ToDo")
    priority = Column(String(10), nullable=False, default="Medium")

    assignees = Column(JSONType, nullable=False, default=list)
    tags = Column(JSONType, nullable=False, default=list)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    due_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    estimated_hours = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
