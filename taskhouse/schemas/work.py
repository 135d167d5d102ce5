from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from taskhouse.schemas.accounts import TaskStatusName

ProjectStatusName = Literal["Planning", "Active", "OnHold", "Completed", "Archived"]
PriorityName = Literal["Low", "Medium", "High"]


class ProjectCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    priority: PriorityName = "Medium"
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    manager_id: int
    team_members: list[int] = Field(default_factory=list)
    client_id: Optional[int] = None


class ProjectUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[ProjectStatusName] = None
    priority: Optional[PriorityName] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    manager_id: Optional[int] = None
    team_members: Optional[list[int]] = None
    client_id: Optional[int] = None


class TaskCreateRequest(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    priority: PriorityName = "Medium"
    assignees: list[int] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    tags: list[str] = Field(default_factory=list)
    parent_task_id: Optional[int] = None


class TaskUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[PriorityName] = None
    assignees: Optional[list[int]] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    tags: Optional[list[str]] = None
    parent_task_id: Optional[int] = None


class TaskStatusRequest(BaseModel):
    status: TaskStatusName


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    mentions: list[int] = Field(default_factory=list)
