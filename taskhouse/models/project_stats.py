from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base


class ProjectStats(Base):
    __tablename__ = "project_stats"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, unique=True)

    total_tasks = Column(Integer, nullable=False, default=0)
    completed_tasks = Column(Integer, nullable=False, default=0)
    in_progress_tasks = Column(Integer, nullable=False, default=0)
    overdue_tasks = Column(Integer, nullable=False, default=0)
    completion_rate = Column(Float, nullable=False, default=0.0)

    last_updated = Column(DateTime, nullable=False, default=utcnow)
