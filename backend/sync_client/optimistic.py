"""
Optimistic board state.

What the user sees is never stored; it is recomputed as

    displayed = apply_pending(confirmed, pending)

where ``confirmed`` is the last task list the server returned and
``pending`` is the ordered queue of local actions not yet superseded by a
fresh server read. A failed mutation is not rolled back in place: its entry
stays in the queue, flagged as failed, until the next confirmed list arrives
and replaces it with server truth.
"""

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Set, Tuple, Union

from models import TaskStatus
from ordering import sort_tasks
from results import ActionResult
from schemas import TaskOut

logger = logging.getLogger("kanban-sync.client.optimistic")


# ============================================================
# ACTIONS
# ============================================================

@dataclass(frozen=True)
class UpdateStatus:
    task_id: str
    new_status: TaskStatus


@dataclass(frozen=True)
class Reorder:
    tasks: Tuple[TaskOut, ...]


@dataclass(frozen=True)
class Add:
    task: TaskOut


@dataclass(frozen=True)
class Delete:
    task_id: str


OptimisticAction = Union[UpdateStatus, Reorder, Add, Delete]


def tasks_reducer(state: List[TaskOut], action: OptimisticAction) -> List[TaskOut]:
    """Apply one optimistic action to a task list, returning a new list"""
    if isinstance(action, UpdateStatus):
        return [
            t.model_copy(update={"status": action.new_status}) if t.id == action.task_id else t
            for t in state
        ]
    if isinstance(action, Reorder):
        return list(action.tasks)
    if isinstance(action, Add):
        return [*state, action.task]
    if isinstance(action, Delete):
        return [t for t in state if t.id != action.task_id]
    return state


def affected_task_ids(action: OptimisticAction) -> Set[str]:
    if isinstance(action, (UpdateStatus, Delete)):
        return {action.task_id}
    if isinstance(action, Add):
        return {action.task.id}
    if isinstance(action, Reorder):
        return {t.id for t in action.tasks}
    return set()


# ============================================================
# PENDING QUEUE
# ============================================================

class PendingState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class PendingAction:
    id: int
    action: OptimisticAction
    state: PendingState = PendingState.PENDING
    error: Optional[str] = None


def apply_pending(confirmed: Iterable[TaskOut], pending: Iterable[PendingAction]) -> List[TaskOut]:
    state = list(confirmed)
    for entry in pending:
        state = tasks_reducer(state, entry.action)
    return state


@dataclass
class OptimisticBoard:
    confirmed: List[TaskOut] = field(default_factory=list)
    pending: List[PendingAction] = field(default_factory=list)

    def __post_init__(self):
        self._ids = itertools.count(1)
        self.confirmed = sort_tasks(self.confirmed)

    @property
    def displayed(self) -> List[TaskOut]:
        return apply_pending(self.confirmed, self.pending)

    def column(self, status: TaskStatus) -> List[TaskOut]:
        return [t for t in self.displayed if t.status == status]

    def dispatch(self, action: OptimisticAction) -> PendingAction:
        entry = PendingAction(id=next(self._ids), action=action)
        self.pending.append(entry)
        return entry

    def settle(self, entry: PendingAction, result: ActionResult) -> None:
        """Record the server's answer; the optimistic change stays visible either way"""
        if result.success:
            entry.state = PendingState.CONFIRMED
        else:
            entry.state = PendingState.FAILED
            entry.error = result.error
            logger.warning(f"Optimistic {type(entry.action).__name__} failed: {result.error}")

    def set_confirmed(self, tasks: Iterable[TaskOut]) -> None:
        """Replace server truth; settled actions are dropped, in-flight ones re-applied"""
        self.confirmed = sort_tasks(tasks)
        self.pending = [e for e in self.pending if e.state == PendingState.PENDING]

    def failed_task_ids(self) -> Set[str]:
        ids = set()
        for entry in self.pending:
            if entry.state == PendingState.FAILED:
                ids |= affected_task_ids(entry.action)
        return ids
