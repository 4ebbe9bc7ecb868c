from typing import Optional

from models.project import ProjectModel
from models.task import TaskModel
from models.user import UserModel
from services import lifecycle
from store import WorkspaceStore


class ProjectSession:
    """
    What one viewer is looking at: a project snapshot plus the task they have open.

    Snapshots don't follow the store on their own. Anything that mutates goes through
    the session so it can re-read afterwards; other writers require an explicit `refresh()`.
    """

    def __init__(self, store: WorkspaceStore, project_id: str, actor: UserModel):
        self.store = store
        self.project_id = project_id
        self.actor = actor
        self.project: Optional[ProjectModel] = store.find_project(project_id)
        self.selected_task: Optional[TaskModel] = None

    def refresh(self) -> Optional[ProjectModel]:
        self.project = self.store.find_project(self.project_id)
        if self.selected_task is not None:
            task = self.project.find_task(self.selected_task.id) if self.project else None
            self.selected_task = task
        return self.project

    def select_task(self, task_id: str) -> Optional[TaskModel]:
        self.selected_task = self.project.find_task(task_id) if self.project else None
        return self.selected_task

    def clear_selection(self) -> None:
        self.selected_task = None

    def delete_task(self, task_id: str) -> bool:
        deleted = lifecycle.delete_task(self.store, self.project_id, task_id)
        if self.selected_task is not None and self.selected_task.id == task_id:
            self.selected_task = None
        self.refresh()
        return deleted

    def perform(self, operation, *args, **kwargs):
        """
        Run an operation done *by* someone, e.g. `create_task`, `toggle_status`, `send_message`.
        It is called as `operation(store, project_id, actor, ...)`.
        """
        result = operation(self.store, self.project_id, self.actor, *args, **kwargs)
        self.refresh()
        return result

    def edit(self, operation, *args, **kwargs):
        """Same as `perform` for edits that take no actor, e.g. `update_task`, `delete_subtask`."""
        result = operation(self.store, self.project_id, *args, **kwargs)
        self.refresh()
        return result
