# routers/projects.py — Project listing and project mutation entry points
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

import project_actions
from auth import get_current_user, CurrentUser, PRO_ENTITLEMENT
from database import get_db_session
from queries import get_projects
from results import ActionResult, CreatedRef, Unauthorized
from schemas import ProjectOut

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=255)


class ProjectRename(BaseModel):
    name: str = Field(..., max_length=255)


@router.get("", response_model=List[ProjectOut])
async def list_projects(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Projects of the organisation, oldest first"""
    try:
        return await get_projects(db, user.current_tenant())
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/access")
async def check_pro_access(user: CurrentUser = Depends(get_current_user)):
    """Whether the organisation may hold more than one project"""
    return {"has_pro": user.has_entitlement(PRO_ENTITLEMENT)}


@router.post("", response_model=ActionResult[CreatedRef])
async def create_project(
    data: ProjectCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await project_actions.create_project(
        db, user.current_tenant(), data.name,
        has_pro=user.has_entitlement(PRO_ENTITLEMENT),
    )


@router.patch("/{project_id}", response_model=ActionResult[None])
async def rename_project(
    project_id: str,
    data: ProjectRename,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await project_actions.rename_project(db, user.current_tenant(), project_id, data.name)


@router.delete("/{project_id}", response_model=ActionResult[None])
async def delete_project(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await project_actions.delete_project(db, user.current_tenant(), project_id)
