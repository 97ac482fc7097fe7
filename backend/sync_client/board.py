# sync_client/board.py — Board controller: optimistic UI actions backed by server mutations
import logging
import uuid
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from models import TaskStatus, utcnow
from results import ActionResult, fail
from schemas import TaskOut
from sync_client.api import TaskBoardClient, task_key
from sync_client.optimistic import (
    Add, Delete, OptimisticAction, OptimisticBoard, Reorder, UpdateStatus,
)
from sync_client.poller import CacheEntry, SyncCache

logger = logging.getLogger("kanban-sync.client.board")

BUSY_MESSAGE = "Another change to this item is still being saved"
CLIENT_ERROR_CODE = "client_error"


class BoardController:
    """One project's board as one user sees it.

    Every user intent is applied to the optimistic board at once, then sent
    to the server. Whatever the outcome, the cache is asked for an
    out-of-cycle refresh; the refreshed list becomes the new confirmed state.
    A control stays busy until its mutation settles, so a second click on it
    is refused instead of submitted twice.
    """

    def __init__(self, api: TaskBoardClient, cache: SyncCache, project_id: Optional[str] = None):
        self.api = api
        self.cache = cache
        self.project_id = project_id
        self.key = task_key(project_id)
        self.board = OptimisticBoard(confirmed=list(cache.data(self.key)))
        self._busy: Set[str] = set()
        self._unsubscribe = cache.subscribe(self.key, self._on_refresh)

    def close(self) -> None:
        self._unsubscribe()

    def _on_refresh(self, entry: CacheEntry) -> None:
        # A failed refresh carries no new truth; failed actions stay flagged
        if entry.error is None and entry.data is not None:
            self.board.set_confirmed(entry.data)

    # --------------------------------------------------------
    # Views
    # --------------------------------------------------------

    @property
    def tasks(self) -> List[TaskOut]:
        return self.board.displayed

    def columns(self) -> Dict[TaskStatus, List[TaskOut]]:
        return {status: self.board.column(status) for status in TaskStatus}

    def is_busy(self, control: str) -> bool:
        return control in self._busy

    @property
    def is_loading(self) -> bool:
        """True only for the first fetch, before any data arrived"""
        return self.cache.entry(self.key).is_loading

    @property
    def error(self) -> Optional[BaseException]:
        return self.cache.entry(self.key).error

    # --------------------------------------------------------
    # Intents
    # --------------------------------------------------------

    async def _run(
        self,
        control: str,
        action: Optional[OptimisticAction],
        call: Callable[[], Awaitable[ActionResult]],
    ) -> ActionResult:
        if control in self._busy:
            return fail(BUSY_MESSAGE, "busy")

        self._busy.add(control)
        try:
            entry = self.board.dispatch(action) if action is not None else None
            try:
                result = await call()
            except BaseException as e:
                # Only PENDING entries survive a refresh; settle before re-raising
                if entry is not None:
                    self.board.settle(entry, fail(str(e) or type(e).__name__, CLIENT_ERROR_CODE))
                logger.error(f"Board mutation '{control}' raised: {e!r}")
                raise
            if entry is not None:
                self.board.settle(entry, result)
            if not result.success:
                logger.error(f"Board mutation '{control}' failed: {result.error}")
            await self.cache.mutate(self.key)
            return result
        finally:
            self._busy.discard(control)

    async def move(self, task_id: str, new_status: TaskStatus) -> ActionResult:
        """Drop a card into another column; it lands at the bottom"""
        return await self._run(
            f"task:{task_id}",
            UpdateStatus(task_id=task_id, new_status=new_status),
            lambda: self.api.update_task_status(task_id, new_status),
        )

    async def handle_data_change(self, new_tasks: Iterable[TaskOut]) -> ActionResult:
        """Result of a drag-and-drop: a column change or a reordering"""
        new_tasks = list(new_tasks)
        current = {t.id: t for t in self.board.displayed}
        moved = [t for t in new_tasks if t.id in current and current[t.id].status != t.status]
        if moved:
            return await self.move(moved[0].id, moved[0].status)

        return await self._run(
            "board:reorder",
            Reorder(tasks=tuple(new_tasks)),
            lambda: self._reorder_columns(new_tasks),
        )

    async def _reorder_columns(self, tasks: List[TaskOut]) -> ActionResult:
        by_column: Dict[TaskStatus, List[str]] = {}
        for task in tasks:
            by_column.setdefault(task.status, []).append(task.id)

        result = ActionResult(success=True)
        for status, task_ids in by_column.items():
            column_result = await self.api.reorder_tasks(task_ids, status)
            if not column_result.success and result.success:
                result = column_result
        return result

    async def create(
        self, title: str, description: Optional[str] = None, status: TaskStatus = TaskStatus.PLANNED,
    ) -> ActionResult:
        column = self.board.column(status)
        now = utcnow()
        draft = TaskOut(
            id=f"optimistic-{uuid.uuid4()}",
            project_id=self.project_id or "",
            title=title.strip(),
            description=(description or "").strip() or None,
            status=status,
            order=max((t.order for t in column), default=0) + 1,
            created_at=now,
            updated_at=now,
        )
        return await self._run(
            f"create:{status.value}",
            Add(task=draft),
            lambda: self.api.create_task(title, description, self.project_id, status),
        )

    async def delete(self, task_id: str) -> ActionResult:
        return await self._run(
            f"task:{task_id}",
            Delete(task_id=task_id),
            lambda: self.api.delete_task(task_id),
        )

    async def edit(
        self, task_id: str, title: Optional[str] = None, description: Optional[str] = None,
    ) -> ActionResult:
        """Edits are not applied optimistically; the refresh shows them"""
        return await self._run(
            f"task:{task_id}",
            None,
            lambda: self.api.update_task(task_id, title, description),
        )

    def failed_task_ids(self) -> Set[str]:
        return self.board.failed_task_ids()
