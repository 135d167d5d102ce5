from sqlalchemy import Boolean, Column, DateTime, Integer, String

from taskhouse.core.clock import utcnow
from taskhouse.core.database import Base
from taskhouse.models.types import JSONType


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(50), unique=True, index=True, nullable=False)
    # {"logo_url", "primary_color", "secondary_color"}
    branding = Column(JSONType, nullable=False, default=dict)
    # {"allow_client_access", "default_task_statuses"}
    settings = Column(JSONType, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
