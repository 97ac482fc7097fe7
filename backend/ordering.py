# ordering.py — Position of a task inside its (project, status) column
#
# Order values are integers assigned max+1 on append and 0..n-1 on an explicit
# reorder. They are not required to be dense or unique: two creates racing on
# the same column may read the same max and collide. Readers break ties with
# created_at, see sort_key().

from typing import Iterable, List

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import Task, TaskStatus

ORDER_BASE = 1


async def next_order(db: AsyncSession, project_id: str, status: TaskStatus) -> int:
    """Order value that appends to the end of the column"""
    stmt = select(func.max(Task.order)).where(
        Task.project_id == project_id,
        Task.status == status,
    )
    result = await db.execute(stmt)
    max_order = result.scalar()
    if max_order is None:
        return ORDER_BASE
    return max_order + 1


async def reorder(
    db: AsyncSession, org_id: str, task_ids: Iterable[str], status: TaskStatus,
) -> int:
    """Assign order = index and the given status to each id, in the caller's transaction.

    Ids outside the tenant match no row and are skipped. Returns the number of
    rows touched.
    """
    touched = 0
    for index, task_id in enumerate(task_ids):
        stmt = (
            update(Task)
            .where(Task.id == task_id, Task.organisation_id == org_id)
            .values(order=index, status=status)
        )
        result = await db.execute(stmt)
        touched += result.rowcount or 0
    return touched


def sort_key(task):
    return (task.order, task.created_at)


def sort_tasks(tasks: Iterable) -> List:
    return sorted(tasks, key=sort_key)
