# routers/dashboard.py — Aggregate dashboard and first-render board snapshot
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from queries import get_board, get_dashboard_stats, get_tasks
from results import Unauthorized
from schemas import BoardOut, DashboardStats, TaskOut

router = APIRouter(prefix="/api/v1", tags=["Dashboard"])


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Task counts by status, recent activity and per-project totals"""
    try:
        return await get_dashboard_stats(db, user.current_tenant())
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/board", response_model=BoardOut)
async def board(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Projects and tasks for the first render; creates "My Project" for a new organisation"""
    try:
        return await get_board(db, user.current_tenant())
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/board/tasks", response_model=List[TaskOut])
async def board_tasks(
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Tasks of one project; the organisation's first project when none is given"""
    try:
        return await get_tasks(db, user.current_tenant(), project_id)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))
