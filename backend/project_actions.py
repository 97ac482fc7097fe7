# project_actions.py — Project mutations with the plan gate and the one-project floor
import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

import invalidation
from models import Project, Task
from queries import count_projects, get_project
from results import (
    CreatedRef, InvariantViolation, PlanGate, require_org, server_action,
)

logger = logging.getLogger("kanban-sync.projects")

FREE_PLAN_PROJECT_LIMIT = 1
UPGRADE_MESSAGE = "Upgrade to Pro to create multiple projects."


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise InvariantViolation("Project name cannot be empty")
    return name


@server_action("Failed to create project")
async def create_project(
    db: AsyncSession, org_id: Optional[str], name: str, has_pro: bool = False,
) -> CreatedRef:
    org_id = require_org(org_id)
    name = _clean_name(name)

    if not has_pro and await count_projects(db, org_id) >= FREE_PLAN_PROJECT_LIMIT:
        raise PlanGate(UPGRADE_MESSAGE)

    project = Project(name=name, organisation_id=org_id)
    db.add(project)
    await db.commit()

    logger.info(f"Project {project.id} created for org {org_id}")
    invalidation.notify(org_id, "project.created")
    return CreatedRef(id=project.id)


@server_action("Failed to delete project")
async def delete_project(db: AsyncSession, org_id: Optional[str], project_id: str) -> None:
    """Delete a project and all of its tasks, unless it is the tenant's last one"""
    org_id = require_org(org_id)
    project = await get_project(db, org_id, project_id)

    if await count_projects(db, org_id) <= 1:
        raise InvariantViolation("Cannot delete your only project")

    result = await db.execute(
        delete(Task)
        .where(Task.project_id == project.id, Task.organisation_id == org_id)
    )
    await db.delete(project)
    await db.commit()

    logger.info(f"Project {project_id} deleted with {result.rowcount or 0} task(s)")
    invalidation.notify(org_id, "project.deleted")


@server_action("Failed to rename project")
async def rename_project(
    db: AsyncSession, org_id: Optional[str], project_id: str, name: str,
) -> None:
    org_id = require_org(org_id)
    project = await get_project(db, org_id, project_id)

    project.name = _clean_name(name)
    await db.commit()
    invalidation.notify(org_id, "project.renamed")
