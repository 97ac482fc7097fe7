# sync_client/api.py — httpx client for the task tracker API
import logging
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from models import TaskStatus
from results import ActionResult, fail
from schemas import TaskOut

logger = logging.getLogger("kanban-sync.client.api")

TASKS_PATH = "/api/v1/tasks"
PROJECTS_PATH = "/api/v1/projects"
NETWORK_ERROR = "Network error; the board will resync on the next refresh"


def task_key(project_id: Optional[str] = None) -> str:
    """Cache key and request path of a task listing"""
    if project_id:
        return f"{TASKS_PATH}?{urlencode({'projectId': project_id})}"
    return TASKS_PATH


class FetchError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class TaskBoardClient:
    """Calls the read endpoint and the mutation entry points with one bearer token"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    # --------------------------------------------------------
    # Reads
    # --------------------------------------------------------

    async def fetch(self, key: str) -> List[TaskOut]:
        """Fetcher for SyncCache: GET a task listing path"""
        resp = await self._client.get(key)
        if resp.status_code != 200:
            try:
                message = resp.json().get("error") or "Failed to fetch tasks"
            except ValueError:
                message = "Failed to fetch tasks"
            raise FetchError(resp.status_code, message)
        return [TaskOut.model_validate(t) for t in resp.json()]

    async def fetch_tasks(self, project_id: Optional[str] = None) -> List[TaskOut]:
        return await self.fetch(task_key(project_id))

    # --------------------------------------------------------
    # Mutations
    # --------------------------------------------------------

    async def _action(self, method: str, url: str, json: Optional[dict] = None) -> ActionResult:
        try:
            resp = await self._client.request(method, url, json=json)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            return fail(NETWORK_ERROR, "network")
        return ActionResult.model_validate(resp.json())

    async def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        project_id: Optional[str] = None,
        status: TaskStatus = TaskStatus.PLANNED,
    ) -> ActionResult:
        return await self._action("POST", TASKS_PATH, {
            "title": title,
            "description": description,
            "project_id": project_id,
            "status": status.value,
        })

    async def update_task_status(self, task_id: str, status: TaskStatus) -> ActionResult:
        return await self._action("POST", f"{TASKS_PATH}/{task_id}/status", {"status": status.value})

    async def reorder_tasks(self, task_ids: List[str], status: TaskStatus) -> ActionResult:
        return await self._action("POST", f"{TASKS_PATH}/reorder", {
            "task_ids": list(task_ids),
            "status": status.value,
        })

    async def update_task(
        self, task_id: str, title: Optional[str] = None, description: Optional[str] = None,
    ) -> ActionResult:
        body = {}
        if title is not None:
            body["title"] = title
        if description is not None:
            body["description"] = description
        return await self._action("PATCH", f"{TASKS_PATH}/{task_id}", body)

    async def delete_task(self, task_id: str) -> ActionResult:
        return await self._action("DELETE", f"{TASKS_PATH}/{task_id}")

    async def create_project(self, name: str) -> ActionResult:
        return await self._action("POST", PROJECTS_PATH, {"name": name})

    async def rename_project(self, project_id: str, name: str) -> ActionResult:
        return await self._action("PATCH", f"{PROJECTS_PATH}/{project_id}", {"name": name})

    async def delete_project(self, project_id: str) -> ActionResult:
        return await self._action("DELETE", f"{PROJECTS_PATH}/{project_id}")
