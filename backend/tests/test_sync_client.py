# tests/test_sync_client.py — Board controller against the live app: optimistic actions, refresh, failures
import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from main import app
from models import TaskStatus
from sync_client.api import FetchError, TaskBoardClient
from sync_client.board import BUSY_MESSAGE, BoardController
from sync_client.poller import SyncCache
from tests.conftest import get_auth_headers


class SwitchableFetcher:
    """Wraps the API fetcher so a test can take the read path offline"""

    def __init__(self, api: TaskBoardClient):
        self.api = api
        self.offline = False

    async def __call__(self, key):
        if self.offline:
            raise ConnectionError("offline")
        return await self.api.fetch(key)


@pytest.fixture
def fetcher(board_api):
    return SwitchableFetcher(board_api)


@pytest_asyncio.fixture
async def controller(board_api, fetcher):
    cache = SyncCache(fetcher, refresh_interval=0, dedupe_interval=0)
    board = BoardController(board_api, cache)
    await cache.revalidate(board.key)
    yield board
    board.close()


async def _seed(api: TaskBoardClient, controller: BoardController, *titles):
    ids = []
    for title in titles:
        result = await api.create_task(title)
        assert result.success, result
        ids.append(result.data["id"])
    await controller.cache.mutate(controller.key)
    return ids


def _titles(tasks):
    return [t.title for t in tasks]


@pytest.mark.asyncio
async def test_create_shows_draft_then_server_task(controller, board_api, monkeypatch):
    seen_while_saving = []
    original = board_api.create_task

    async def observing_create(*args, **kwargs):
        seen_while_saving.extend(t.id for t in controller.tasks)
        return await original(*args, **kwargs)

    monkeypatch.setattr(board_api, "create_task", observing_create)

    result = await controller.create("  Write docs  ")

    assert result.success
    assert len(seen_while_saving) == 1
    assert seen_while_saving[0].startswith("optimistic-")
    assert [t.id for t in controller.tasks] == [result.data["id"]]
    assert _titles(controller.tasks) == ["Write docs"]
    assert controller.board.pending == []


@pytest.mark.asyncio
async def test_draft_lands_at_bottom_of_column(controller, board_api, monkeypatch):
    await _seed(board_api, controller, "One", "Two")
    orders = []
    original = board_api.create_task

    async def observing_create(*args, **kwargs):
        orders.extend(t.order for t in controller.board.column(TaskStatus.PLANNED))
        return await original(*args, **kwargs)

    monkeypatch.setattr(board_api, "create_task", observing_create)
    await controller.create("Three")

    assert orders == [1, 2, 3]
    assert _titles(controller.board.column(TaskStatus.PLANNED)) == ["One", "Two", "Three"]


@pytest.mark.asyncio
async def test_move_changes_column(controller, board_api):
    (task_id,) = await _seed(board_api, controller, "Ship it")

    result = await controller.move(task_id, TaskStatus.DONE)

    assert result.success
    columns = controller.columns()
    assert columns[TaskStatus.PLANNED] == []
    assert [t.id for t in columns[TaskStatus.DONE]] == [task_id]


@pytest.mark.asyncio
async def test_drag_within_column_reorders(controller, board_api):
    await _seed(board_api, controller, "T1", "T2", "T3")
    t1, t2, t3 = controller.tasks

    result = await controller.handle_data_change([t3, t1, t2])

    assert result.success
    planned = controller.board.column(TaskStatus.PLANNED)
    assert [(t.title, t.order) for t in planned] == [("T3", 0), ("T1", 1), ("T2", 2)]


@pytest.mark.asyncio
async def test_drag_across_columns_moves(controller, board_api):
    await _seed(board_api, controller, "T1", "T2")
    t1, t2 = controller.tasks

    result = await controller.handle_data_change([t1.model_copy(update={"status": TaskStatus.IN_PROGRESS}), t2])

    assert result.success
    assert _titles(controller.board.column(TaskStatus.IN_PROGRESS)) == ["T1"]
    assert _titles(controller.board.column(TaskStatus.PLANNED)) == ["T2"]


@pytest.mark.asyncio
async def test_delete_and_edit(controller, board_api):
    keep, drop = await _seed(board_api, controller, "Keep", "Drop")

    assert (await controller.delete(drop)).success
    assert (await controller.edit(keep, title="Kept")).success

    assert _titles(controller.tasks) == ["Kept"]


@pytest.mark.asyncio
async def test_busy_control_refuses_second_submission(controller, board_api):
    (task_id,) = await _seed(board_api, controller, "Double click")

    first, second = await asyncio.gather(
        controller.move(task_id, TaskStatus.DONE),
        controller.move(task_id, TaskStatus.IN_PROGRESS),
    )

    assert first.success
    assert second.success is False
    assert second.error == BUSY_MESSAGE
    assert not controller.is_busy(f"task:{task_id}")
    assert controller.tasks[0].status == TaskStatus.DONE


@pytest.mark.asyncio
async def test_failed_move_stays_flagged_until_fresh_data(controller, board_api, fetcher, client, test_user):
    (task_id,) = await _seed(board_api, controller, "Deleted elsewhere")
    # Another session removes the task; this board still shows it
    await client.delete(f"/api/v1/tasks/{task_id}", headers=get_auth_headers(test_user))
    fetcher.offline = True

    result = await controller.move(task_id, TaskStatus.DONE)

    assert result.success is False
    assert result.code == "not_found"
    assert controller.failed_task_ids() == {task_id}
    assert [t.id for t in controller.board.column(TaskStatus.DONE)] == [task_id]
    assert isinstance(controller.error, ConnectionError)

    fetcher.offline = False
    await controller.cache.mutate(controller.key)

    assert controller.tasks == []
    assert controller.failed_task_ids() == set()
    assert controller.error is None


@pytest.mark.asyncio
async def test_other_users_changes_arrive_on_refresh(controller, client, test_user):
    headers = get_auth_headers(test_user)
    resp = await client.post("/api/v1/tasks", json={"title": "From a teammate"}, headers=headers)
    assert resp.json()["success"] is True
    assert controller.tasks == []

    await controller.cache.revalidate(controller.key)

    assert _titles(controller.tasks) == ["From a teammate"]


@pytest.mark.asyncio
async def test_fetch_without_organisation_raises(client, no_org_user):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=get_auth_headers(no_org_user),
    ) as ac:
        api = TaskBoardClient(client=ac)
        with pytest.raises(FetchError) as exc:
            await api.fetch_tasks()
        assert exc.value.status_code == 401

        cache = SyncCache(api.fetch, refresh_interval=0, dedupe_interval=0)
        board = BoardController(api, cache)
        await cache.revalidate(board.key)
        assert isinstance(board.error, FetchError)
        assert board.tasks == []
        board.close()


@pytest.mark.asyncio
async def test_raising_call_is_corrected_by_next_refresh(controller, board_api, monkeypatch):
    (task_id,) = await _seed(board_api, controller, "Malformed answer")

    async def broken_status_update(*args, **kwargs):
        raise ValueError("response body is not an ActionResult")

    monkeypatch.setattr(board_api, "update_task_status", broken_status_update)

    with pytest.raises(ValueError):
        await controller.move(task_id, TaskStatus.DONE)

    assert controller.failed_task_ids() == {task_id}
    assert not controller.is_busy(f"task:{task_id}")

    for _ in range(3):
        await controller.cache.mutate(controller.key)

    assert controller.board.pending == []
    assert controller.tasks[0].status == TaskStatus.PLANNED


@pytest.mark.asyncio
async def test_loading_only_until_first_data(board_api, fetcher):
    cache = SyncCache(fetcher, refresh_interval=0, dedupe_interval=0)
    board = BoardController(board_api, cache)
    assert not board.is_loading

    first_fetch = asyncio.create_task(cache.revalidate(board.key))
    await asyncio.sleep(0)
    assert board.is_loading

    await first_fetch
    assert not board.is_loading
    board.close()
