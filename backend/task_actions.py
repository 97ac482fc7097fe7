# task_actions.py — Task mutations: create, move, reorder, edit, delete
# Each action takes the tenant explicitly (resolved once at the request
# boundary), runs in one transaction and returns an ActionResult.

import logging
from typing import List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

import invalidation
from auth import ActingUser
from models import Task, TaskStatus, User, utcnow
from ordering import next_order, reorder
from queries import get_or_create_first_project, get_project, get_task
from results import CreatedRef, InvariantViolation, require_org, server_action

logger = logging.getLogger("kanban-sync.tasks")

_UPSERT_DIALECTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise InvariantViolation("Task title cannot be empty")
    return title


async def upsert_user_snapshot(db: AsyncSession, actor: ActingUser) -> None:
    """Refresh the cached display identity of the acting user.

    One INSERT .. ON CONFLICT DO UPDATE, so two first requests by the same
    user cannot both insert.
    """
    values = {
        "email": actor.email,
        "first_name": actor.first_name,
        "last_name": actor.last_name,
        "image_url": actor.image_url,
    }
    insert = _UPSERT_DIALECTS.get(db.bind.dialect.name, pg_insert)
    stmt = insert(User).values(id=actor.id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.id],
        set_={**{k: stmt.excluded[k] for k in values}, "updated_at": utcnow()},
    )
    await db.execute(stmt)


@server_action("Failed to create task")
async def create_task(
    db: AsyncSession,
    org_id: Optional[str],
    title: str,
    description: Optional[str] = None,
    project_id: Optional[str] = None,
    status: TaskStatus = TaskStatus.PLANNED,
    actor: Optional[ActingUser] = None,
) -> CreatedRef:
    org_id = require_org(org_id)
    title = _clean_title(title)

    if project_id:
        project = await get_project(db, org_id, project_id)
    else:
        project = await get_or_create_first_project(db, org_id)

    if actor is not None:
        await upsert_user_snapshot(db, actor)

    task = Task(
        organisation_id=org_id,
        project_id=project.id,
        title=title,
        description=(description or "").strip() or None,
        status=status,
        order=await next_order(db, project.id, status),
        assignee_id=actor.id if actor else None,
    )
    db.add(task)
    await db.commit()

    logger.info(f"Task {task.id} created in {status.value} of project {project.id} (order {task.order})")
    invalidation.notify(org_id, "task.created")
    return CreatedRef(id=task.id)


@server_action("Failed to update task status")
async def update_task_status(
    db: AsyncSession, org_id: Optional[str], task_id: str, status: TaskStatus,
) -> None:
    """Move a task to the bottom of another column"""
    org_id = require_org(org_id)
    task = await get_task(db, org_id, task_id)

    old_status = task.status
    task.order = await next_order(db, task.project_id, status)
    task.status = status
    await db.commit()

    logger.info(f"Task {task_id} moved {old_status.value} -> {status.value} (order {task.order})")
    invalidation.notify(org_id, "task.moved")


@server_action("Failed to reorder tasks")
async def reorder_tasks(
    db: AsyncSession, org_id: Optional[str], task_ids: List[str], status: TaskStatus,
) -> None:
    """Rewrite a whole column: order = index and status for every listed task"""
    org_id = require_org(org_id)
    touched = await reorder(db, org_id, task_ids, status)
    await db.commit()

    if touched != len(task_ids):
        logger.warning(f"Reorder in {status.value} skipped {len(task_ids) - touched} unknown task(s)")
    invalidation.notify(org_id, "task.reordered")


@server_action("Failed to delete task")
async def delete_task(db: AsyncSession, org_id: Optional[str], task_id: str) -> None:
    org_id = require_org(org_id)
    task = await get_task(db, org_id, task_id)

    await db.delete(task)
    await db.commit()

    logger.info(f"Task {task_id} deleted")
    invalidation.notify(org_id, "task.deleted")


@server_action("Failed to update task")
async def update_task(
    db: AsyncSession,
    org_id: Optional[str],
    task_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> None:
    """Partial update: only fields that are not None change"""
    org_id = require_org(org_id)
    task = await get_task(db, org_id, task_id)

    if title is not None:
        task.title = _clean_title(title)
    if description is not None:
        task.description = description.strip() or None

    await db.commit()
    invalidation.notify(org_id, "task.updated")
