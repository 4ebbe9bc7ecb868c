"""
Read-side views over the store: the activity timeline and the per-user task inboxes.
Nothing here writes. Everything is recomputed on each call.
"""

from datetime import timedelta
from typing import List, Optional

from pydantic import BaseModel, Field

from models.activity import ActivityModel
from models.task import TaskModel
from store import WorkspaceStore
from utils.dates import utcnow


class ProjectTaskGroup(BaseModel):
    project_id: str
    project_name: str
    tasks: List[TaskModel] = Field(default_factory=list)


def activities_for(store: WorkspaceStore, user_id: str) -> List[ActivityModel]:
    """What other people did, newest first. A user's own actions never show up."""
    return [a for a in store.activities() if a.actor_id != user_id]


def _due_key(task: TaskModel):
    # Tasks with a due date first, earliest first
    return (task.due_date is None, task.due_date.timestamp() if task.due_date else 0.0)


def new_task_inbox(store: WorkspaceStore, user_id: str) -> List[ProjectTaskGroup]:
    """Assignments the user has not accepted yet, grouped by project."""
    groups = []
    for project in store.list_projects():
        tasks = [t for t in project.tasks if t.is_new(user_id)]
        if tasks:
            tasks.sort(key=lambda t: t.created_at, reverse=True)
            groups.append(ProjectTaskGroup(project_id=project.id, project_name=project.name, tasks=tasks))
    return groups


def new_task_count(store: WorkspaceStore, user_id: str) -> int:
    return sum(len(g.tasks) for g in new_task_inbox(store, user_id))


def my_tasks_by_project(store: WorkspaceStore, user_id: str) -> List[ProjectTaskGroup]:
    """Pending tasks assigned to the user; unaccepted ones first, then by due date."""
    groups = []
    for project in store.list_projects():
        tasks = [t for t in project.tasks if t.status == 'pending' and t.is_assigned(user_id)]
        if tasks:
            tasks.sort(key=lambda t: (not t.is_new(user_id), _due_key(t)))
            groups.append(ProjectTaskGroup(project_id=project.id, project_name=project.name, tasks=tasks))
    return groups


def done_tasks_by_project(store: WorkspaceStore, user_id: str) -> List[ProjectTaskGroup]:
    groups = []
    for project in store.list_projects():
        tasks = [t for t in project.tasks if t.status == 'done' and t.is_assigned(user_id)]
        if tasks:
            groups.append(ProjectTaskGroup(project_id=project.id, project_name=project.name, tasks=tasks))
    return groups


def done_this_week_count(store: WorkspaceStore, user_id: str, now=None) -> int:
    """Tasks completed in the last seven days across the user's projects."""
    now = now or utcnow()
    week_ago = now - timedelta(days=7)
    return sum(
        1
        for project in store.list_projects()
        if project.is_member(user_id)
        for task in project.tasks
        if task.status == 'done' and task.last_activity > week_ago
    )


def total_unread_count(store: WorkspaceStore, user_id: str, search: Optional[str] = None) -> int:
    return sum(p.unread_count(user_id) for p in store.list_projects(search))
