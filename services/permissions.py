"""
Advisory edit rules. Nothing in the engine refuses an operation because of these;
callers decide whether to warn or block (see `config.ENFORCE_PERMISSIONS`).
"""

from models.project import ProjectModel
from models.task import TaskModel, SubtaskModel
from models.user import UserModel


def is_admin(project: ProjectModel, user: UserModel) -> bool:
    admin = project.admin
    return admin is not None and admin.id == user.id


def can_edit_task(project: ProjectModel, task: TaskModel, user: UserModel) -> bool:
    if task.created_by is None:
        return True
    return task.created_by.id == user.id or is_admin(project, user)


def can_edit_subtask(project: ProjectModel, subtask: SubtaskModel, user: UserModel) -> bool:
    # Legacy subtasks without a creator are editable by anyone
    if subtask.created_by is None:
        return True
    return subtask.created_by.id == user.id or is_admin(project, user)


def can_toggle_subtask(subtask: SubtaskModel, user: UserModel) -> bool:
    if not subtask.assignees:
        return True
    return subtask.is_assigned(user.id)
