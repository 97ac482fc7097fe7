# routers/tasks.py — Task listing for pollers and task mutation entry points
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import invalidation
import task_actions
from auth import get_current_user, CurrentUser
from database import get_db_session
from models import TaskStatus
from queries import list_tasks
from results import ActionResult, CreatedRef, Unauthorized

logger = logging.getLogger("kanban-sync.api.tasks")

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


# ============================================================
# SCHEMAS
# ============================================================

class TaskCreate(BaseModel):
    title: str = Field(..., max_length=500)
    description: Optional[str] = None
    project_id: Optional[str] = None
    status: TaskStatus = TaskStatus.PLANNED


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskReorder(BaseModel):
    task_ids: List[str]
    status: TaskStatus


# ============================================================
# READ
# ============================================================

@router.get("")
async def get_tasks(
    response: Response,
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Tenant tasks in display order, optionally for one project"""
    org_id = user.current_tenant()
    try:
        tasks = await list_tasks(db, org_id, project_id)
    except Unauthorized:
        return JSONResponse(
            status_code=401,
            content={"error": "You must be in an organization to fetch tasks"},
        )
    except Exception:
        logger.exception("Failed to fetch tasks")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch tasks"})

    response.headers["X-Board-Revision"] = str(invalidation.current_revision(org_id))
    return [t.model_dump(mode="json") for t in tasks]


# ============================================================
# MUTATIONS
# ============================================================

@router.post("", response_model=ActionResult[CreatedRef])
async def create_task(
    data: TaskCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await task_actions.create_task(
        db, user.current_tenant(), data.title,
        description=data.description,
        project_id=data.project_id,
        status=data.status,
        actor=user.as_actor(),
    )


@router.patch("/{task_id}", response_model=ActionResult[None])
async def update_task(
    task_id: str,
    data: TaskUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await task_actions.update_task(
        db, user.current_tenant(), task_id,
        title=data.title, description=data.description,
    )


@router.post("/{task_id}/status", response_model=ActionResult[None])
async def update_task_status(
    task_id: str,
    data: TaskStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await task_actions.update_task_status(db, user.current_tenant(), task_id, data.status)


@router.post("/reorder", response_model=ActionResult[None])
async def reorder_tasks(
    data: TaskReorder,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await task_actions.reorder_tasks(db, user.current_tenant(), data.task_ids, data.status)


@router.delete("/{task_id}", response_model=ActionResult[None])
async def delete_task(
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await task_actions.delete_task(db, user.current_tenant(), task_id)
