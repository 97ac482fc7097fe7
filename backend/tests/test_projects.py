# tests/test_projects.py — Project router and project action tests
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

import project_actions
import task_actions
from models import Project, Task
from queries import get_projects, get_tasks
from tests.conftest import get_auth_headers


async def _project_names(client, headers):
    resp = await client.get("/api/v1/projects", headers=headers)
    assert resp.status_code == 200
    return [p["name"] for p in resp.json()]


@pytest.mark.asyncio
async def test_get_tasks_creates_default_project(db_session, org_id):
    """A tenant seen for the first time gets "My Project" and an empty board"""
    tasks = await get_tasks(db_session, org_id)

    assert tasks == []
    projects = await get_projects(db_session, org_id)
    assert [p.name for p in projects] == ["My Project"]


@pytest.mark.asyncio
async def test_board_tasks_endpoint_creates_default_project(client: AsyncClient, test_user):
    headers = get_auth_headers(test_user)
    resp = await client.get("/api/v1/board/tasks", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == []
    assert await _project_names(client, headers) == ["My Project"]


@pytest.mark.asyncio
async def test_free_plan_cannot_create_second_project(client: AsyncClient, test_user):
    headers = get_auth_headers(test_user)
    resp = await client.post("/api/v1/projects", json={"name": "First"}, headers=headers)
    assert resp.json()["success"] is True

    resp = await client.post("/api/v1/projects", json={"name": "Second"}, headers=headers)
    data = resp.json()
    assert data["success"] is False
    assert data["error"] == "Upgrade to Pro to create multiple projects."
    assert data["code"] == "plan_gate"
    assert await _project_names(client, headers) == ["First"]


@pytest.mark.asyncio
async def test_pro_plan_creates_many_projects(client: AsyncClient, pro_user):
    headers = get_auth_headers(pro_user)
    for name in ("Alpha", "Beta", "Gamma"):
        resp = await client.post("/api/v1/projects", json={"name": name}, headers=headers)
        assert resp.json()["success"] is True
    assert await _project_names(client, headers) == ["Alpha", "Beta", "Gamma"]


@pytest.mark.asyncio
async def test_check_pro_access(client: AsyncClient, test_user, pro_user):
    resp = await client.get("/api/v1/projects/access", headers=get_auth_headers(test_user))
    assert resp.json() == {"has_pro": False}
    resp = await client.get("/api/v1/projects/access", headers=get_auth_headers(pro_user))
    assert resp.json() == {"has_pro": True}


@pytest.mark.asyncio
async def test_create_project_requires_name(client: AsyncClient, pro_user):
    resp = await client.post("/api/v1/projects", json={"name": "  "}, headers=get_auth_headers(pro_user))
    data = resp.json()
    assert data["success"] is False
    assert data["error"] == "Project name cannot be empty"


@pytest.mark.asyncio
async def test_rename_project_trims(client: AsyncClient, test_user):
    headers = get_auth_headers(test_user)
    project_id = (await client.post("/api/v1/projects", json={"name": "Old"}, headers=headers)).json()["data"]["id"]

    resp = await client.patch(f"/api/v1/projects/{project_id}", json={"name": "  New name  "}, headers=headers)
    assert resp.json()["success"] is True
    assert await _project_names(client, headers) == ["New name"]


@pytest.mark.asyncio
async def test_rename_project_to_blank_fails(client: AsyncClient, test_user):
    headers = get_auth_headers(test_user)
    project_id = (await client.post("/api/v1/projects", json={"name": "Keep"}, headers=headers)).json()["data"]["id"]

    resp = await client.patch(f"/api/v1/projects/{project_id}", json={"name": ""}, headers=headers)
    data = resp.json()
    assert data["success"] is False
    assert data["code"] == "invariant_violation"
    assert await _project_names(client, headers) == ["Keep"]


@pytest.mark.asyncio
async def test_cannot_delete_only_project(client: AsyncClient, test_user):
    headers = get_auth_headers(test_user)
    project_id = (await client.post("/api/v1/projects", json={"name": "Only"}, headers=headers)).json()["data"]["id"]

    resp = await client.delete(f"/api/v1/projects/{project_id}", headers=headers)
    data = resp.json()
    assert data["success"] is False
    assert data["error"] == "Cannot delete your only project"
    assert await _project_names(client, headers) == ["Only"]


@pytest.mark.asyncio
async def test_delete_project_cascades_tasks(db_session, org_id):
    first = await project_actions.create_project(db_session, org_id, "Keep", has_pro=True)
    doomed = await project_actions.create_project(db_session, org_id, "Doomed", has_pro=True)
    for i in range(3):
        await task_actions.create_task(db_session, org_id, f"Doomed {i}", project_id=doomed.data.id)
    await task_actions.create_task(db_session, org_id, "Kept", project_id=first.data.id)

    result = await project_actions.delete_project(db_session, org_id, doomed.data.id)
    assert result.success

    orphaned = await db_session.execute(select(func.count(Task.id)).where(Task.project_id == doomed.data.id))
    assert orphaned.scalar() == 0
    remaining = await db_session.execute(select(func.count(Task.id)).where(Task.organisation_id == org_id))
    assert remaining.scalar() == 1
    assert await db_session.get(Project, doomed.data.id) is None


@pytest.mark.asyncio
async def test_delete_foreign_project_not_found(client: AsyncClient, pro_user, other_org_user):
    theirs = get_auth_headers(other_org_user)
    project_id = (await client.post("/api/v1/projects", json={"name": "Theirs"}, headers=theirs)).json()["data"]["id"]

    resp = await client.delete(f"/api/v1/projects/{project_id}", headers=get_auth_headers(pro_user))
    assert resp.json()["error"] == "Project not found"
    assert await _project_names(client, theirs) == ["Theirs"]


@pytest.mark.asyncio
async def test_projects_require_organisation(client: AsyncClient, no_org_user):
    headers = get_auth_headers(no_org_user)
    resp = await client.get("/api/v1/projects", headers=headers)
    assert resp.status_code == 401

    resp = await client.post("/api/v1/projects", json={"name": "Nope"}, headers=headers)
    assert resp.json()["code"] == "unauthorized"


@pytest.mark.asyncio
async def test_task_without_project_lands_in_oldest_project(db_session, org_id):
    first = await project_actions.create_project(db_session, org_id, "A", has_pro=True)
    await project_actions.create_project(db_session, org_id, "B", has_pro=True)

    result = await task_actions.create_task(db_session, org_id, "Unfiled")

    task = await db_session.get(Task, result.data.id)
    assert task.project_id == first.data.id
    assert [p.name for p in await get_projects(db_session, org_id)] == ["A", "B"]
