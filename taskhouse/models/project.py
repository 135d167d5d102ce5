from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base
from taskhouse.models.types import JSONType

PROJECT_STATUSES = ("Planning", "Active", "OnHold", "Completed", "Archived")
PRIORITIES = ("Low", "Medium", "High")


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="Planning", index=True)
    priority = Column(String(10), nullable=False, default="Medium")

    start_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    manager_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    team_members = Column(JSONType, nullable=False, default=list)  # ids de users do mesmo tenant

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
