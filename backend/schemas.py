"""
Response schemas shared by the HTTP routers and the sync client.

Each model mirrors what a board needs to render: tasks come with their
assignee snapshot embedded, projects with their creation time so the
"first project" is stable.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import TaskStatus


class AssigneeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    order: int = 0
    assignee_id: Optional[str] = None
    assignee: Optional[AssigneeOut] = None
    created_at: datetime
    updated_at: datetime


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime
    updated_at: datetime


class ProjectTaskCount(BaseModel):
    id: str
    name: str
    task_count: int = 0


class DashboardStats(BaseModel):
    total_tasks: int = 0
    tasks_by_status: Dict[TaskStatus, int] = Field(default_factory=dict)
    recent_tasks: List[TaskOut] = []
    project_count: int = 0
    projects: List[ProjectTaskCount] = []


class BoardOut(BaseModel):
    projects: List[ProjectOut] = []
    tasks: List[TaskOut] = []
    default_project_id: str
