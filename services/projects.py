from typing import List, Optional

from constants import PROJECT_CREATED_PREVIEW
from logging_config import get_logger
from models.project import ProjectModel
from models.user import UserModel
from store import WorkspaceStore

logger = get_logger("projects")


def create_project(
    store: WorkspaceStore,
    actor: UserModel,
    name: str,
    description: Optional[str] = None,
    members: Optional[List[UserModel]] = None,
) -> Optional[ProjectModel]:
    """New project with the creator as first member, which makes them its admin."""
    if not name or not name.strip():
        return None

    roster = [actor]
    for user in members or []:
        if not any(m.id == user.id for m in roster):
            roster.append(user)

    description = description.strip() if description else None
    project = ProjectModel(
        name=name.strip(),
        description=description or None,
        members=roster,
        last_activity=store.now(),
        last_activity_preview=PROJECT_CREATED_PREVIEW,
    )
    created = store.add_project(project)
    logger.info("Project created", extra={"data": {"project_id": project.id, "members": len(roster)}})
    return created


def delete_project(store: WorkspaceStore, project_id: str) -> bool:
    return store.remove_project(project_id)


def add_member(store: WorkspaceStore, project_id: str, user: UserModel) -> Optional[ProjectModel]:
    project = store.find_project(project_id)
    if project is None:
        return None
    if not project.is_member(user.id):
        project.members.append(user)
        store.upsert_project(project)
    return project


def remove_member(store: WorkspaceStore, project_id: str, user_id: str) -> Optional[ProjectModel]:
    """Drop a member along with their unread set and any task or subtask assignments."""
    project = store.find_project(project_id)
    if project is None or not project.is_member(user_id):
        return None

    project.members = [m for m in project.members if m.id != user_id]
    project.unread_task_ids.pop(user_id, None)
    for task in project.tasks:
        task.assignees = [u for u in task.assignees if u.id != user_id]
        for subtask in task.subtasks:
            subtask.assignees = [u for u in subtask.assignees if u.id != user_id]

    store.upsert_project(project)
    logger.info("Member removed", extra={"data": {"project_id": project_id, "user_id": user_id}})
    return project
