# queries.py — Tenant-scoped reads: projects, task listings, dashboard aggregate
import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import Project, Task, TaskStatus, DEFAULT_PROJECT_NAME
from results import NotFound, require_org
from schemas import (
    BoardOut, DashboardStats, ProjectOut, ProjectTaskCount, TaskOut,
)

logger = logging.getLogger("kanban-sync.queries")

RECENT_TASK_LIMIT = 5


# ============================================================
# PROJECTS
# ============================================================

async def get_projects(db: AsyncSession, org_id: Optional[str]) -> List[Project]:
    """All projects of the tenant, oldest first"""
    org_id = require_org(org_id)
    stmt = (
        select(Project)
        .where(Project.organisation_id == org_id)
        .order_by(Project.created_at.asc(), Project.id.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_first_project(db: AsyncSession, org_id: str) -> Optional[Project]:
    stmt = (
        select(Project)
        .where(Project.organisation_id == org_id)
        .order_by(Project.created_at.asc(), Project.id.asc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_first_project(db: AsyncSession, org_id: str) -> Project:
    """First project of the tenant, creating "My Project" on first sight of the tenant.

    The new project is flushed, not committed; the caller owns the transaction.
    """
    project = await get_first_project(db, org_id)
    if project is None:
        project = Project(name=DEFAULT_PROJECT_NAME, organisation_id=org_id)
        db.add(project)
        await db.flush()
        logger.info(f"Created default project {project.id} for org {org_id}")
    return project


async def get_project(db: AsyncSession, org_id: str, project_id: str) -> Project:
    stmt = select(Project).where(
        Project.id == project_id,
        Project.organisation_id == org_id,
    )
    result = await db.execute(stmt)
    project = result.scalar_one_or_none()
    if not project:
        raise NotFound("Project not found")
    return project


async def count_projects(db: AsyncSession, org_id: str) -> int:
    stmt = select(func.count(Project.id)).where(Project.organisation_id == org_id)
    return (await db.execute(stmt)).scalar() or 0


# ============================================================
# TASKS
# ============================================================

def _tasks_stmt(org_id: str):
    return (
        select(Task)
        .where(Task.organisation_id == org_id)
        .options(selectinload(Task.assignee))
    )


async def get_task(db: AsyncSession, org_id: str, task_id: str) -> Task:
    stmt = select(Task).where(Task.id == task_id, Task.organisation_id == org_id)
    result = await db.execute(stmt)
    task = result.scalar_one_or_none()
    if not task:
        raise NotFound("Task not found")
    return task


async def list_tasks(
    db: AsyncSession, org_id: Optional[str], project_id: Optional[str] = None,
) -> List[TaskOut]:
    """Tenant tasks, optionally for one project, in display order"""
    org_id = require_org(org_id)
    stmt = _tasks_stmt(org_id).order_by(Task.order.asc(), Task.created_at.asc())
    if project_id:
        stmt = stmt.where(Task.project_id == project_id)
    result = await db.execute(stmt)
    return [TaskOut.model_validate(t) for t in result.scalars().all()]


async def get_tasks(
    db: AsyncSession, org_id: Optional[str], project_id: Optional[str] = None,
) -> List[TaskOut]:
    """Tasks of one project; without a project id, of the tenant's first project"""
    org_id = require_org(org_id)
    if not project_id:
        project = await get_or_create_first_project(db, org_id)
        await db.commit()
        project_id = project.id
    return await list_tasks(db, org_id, project_id)


async def get_board(db: AsyncSession, org_id: Optional[str]) -> BoardOut:
    """Everything a board page needs on first render"""
    org_id = require_org(org_id)
    projects = await get_projects(db, org_id)
    if not projects:
        projects = [await get_or_create_first_project(db, org_id)]
        await db.commit()

    tasks = await list_tasks(db, org_id)
    return BoardOut(
        projects=[ProjectOut.model_validate(p) for p in projects],
        tasks=tasks,
        default_project_id=projects[0].id,
    )


# ============================================================
# DASHBOARD
# ============================================================

async def get_dashboard_stats(db: AsyncSession, org_id: Optional[str]) -> DashboardStats:
    org_id = require_org(org_id)

    stmt = _tasks_stmt(org_id).order_by(Task.updated_at.desc(), Task.created_at.desc())
    tasks = (await db.execute(stmt)).scalars().all()

    projects_stmt = (
        select(Project.id, Project.name, func.count(Task.id))
        .outerjoin(Task, Task.project_id == Project.id)
        .where(Project.organisation_id == org_id)
        .group_by(Project.id, Project.name, Project.created_at)
        .order_by(Project.created_at.asc(), Project.id.asc())
    )
    project_rows = (await db.execute(projects_stmt)).all()

    tasks_by_status = {status: 0 for status in TaskStatus}
    for task in tasks:
        tasks_by_status[task.status] += 1

    return DashboardStats(
        total_tasks=len(tasks),
        tasks_by_status=tasks_by_status,
        recent_tasks=[TaskOut.model_validate(t) for t in tasks[:RECENT_TASK_LIMIT]],
        project_count=len(project_rows),
        projects=[
            ProjectTaskCount(id=pid, name=name, task_count=count)
            for pid, name, count in project_rows
        ],
    )
