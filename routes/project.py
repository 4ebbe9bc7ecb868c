from fastapi import APIRouter, Body, HTTPException, Depends, Query
from pydantic import BaseModel, Field
from typing import List, Optional
from models.project import ProjectModel
from models.user import UserModel
from routes.deps import get_current_user, get_project, get_registry, get_store, check_permission
from routes.serializers import serialize_project, serialize_project_summary
from services import projects as project_service
from services.identity import UserRegistry
from services.permissions import is_admin
from store import WorkspaceStore
from logging_config import get_logger

router = APIRouter(prefix="/api/projects", tags=["Projects"])
logger = get_logger("projects")


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    member_ids: List[str] = Field(default_factory=list)


class MemberAdd(BaseModel):
    user_id: str


@router.get("")
async def list_projects(
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    """Projects the current user belongs to, most recently active first"""
    projects = [p for p in store.list_projects(search) if p.is_member(current_user.id)]
    return {
        "data": [serialize_project_summary(p, current_user.id) for p in projects],
        "total": len(projects),
        "total_unread": sum(p.unread_count(current_user.id) for p in projects),
    }


@router.post("", status_code=201)
async def create_project(
    payload: ProjectCreate = Body(...),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
    registry: UserRegistry = Depends(get_registry),
):
    """Create a project. The creator becomes its first member (admin)."""
    members = []
    for user_id in payload.member_ids:
        user = registry.get(user_id)
        if user is None:
            raise HTTPException(status_code=400, detail=f"Unknown user {user_id}")
        members.append(user)

    project = project_service.create_project(store, current_user, payload.name, payload.description, members)
    if project is None:
        raise HTTPException(status_code=400, detail="Project name cannot be empty")
    return serialize_project(project, current_user.id)


@router.get("/{project_id}")
async def get_project_detail(
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
):
    return serialize_project(project, current_user.id)


@router.delete("/{project_id}")
async def delete_project(
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    check_permission(is_admin(project, current_user), "delete project", current_user, project_id=project.id)
    project_service.delete_project(store, project.id)
    return {"message": "Project deleted"}


@router.post("/{project_id}/members")
async def add_member(
    payload: MemberAdd = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
    registry: UserRegistry = Depends(get_registry),
):
    user = registry.get(payload.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    check_permission(is_admin(project, current_user), "add member", current_user, project_id=project.id)
    updated = project_service.add_member(store, project.id, user)
    return serialize_project(updated, current_user.id)


@router.delete("/{project_id}/members/{user_id}")
async def remove_member(
    user_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    check_permission(is_admin(project, current_user), "remove member", current_user, project_id=project.id)
    updated = project_service.remove_member(store, project.id, user_id)
    if updated is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return {"message": "Member removed"}
