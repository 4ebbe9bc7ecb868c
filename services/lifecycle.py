"""
Task and subtask lifecycle.

Every operation reads a project snapshot from the store, edits it, posts any system
message, and writes it back with a single `upsert_project`. Invalid input (blank
titles) and ids that don't resolve are silent no-ops that return None.

Unread policy: task-level events the whole team should notice (creation, status
toggle, being assigned) re-mark the task unread. Subtask edits, subtask toggles,
accept/decline and chat questions leave unread sets alone.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from constants import ActivityTypes, ACCEPTED_PREFIX, DECLINED_PREFIX
from logging_config import get_logger
from models.message import (
    SubtaskCompletedKind,
    SubtaskReference,
    SubtaskReopenedKind,
    TaskReference,
)
from models.project import ProjectModel
from models.task import TaskModel, SubtaskModel, AttachmentModel
from models.user import UserModel
from services.messaging import post_message, touch
from store import WorkspaceStore

logger = get_logger("lifecycle")

# Distinguishes "leave as is" from an explicit None (clear the field)
UNSET = object()


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def _load_task(store: WorkspaceStore, project_id: str, task_id: str) -> Tuple[Optional[ProjectModel], Optional[TaskModel]]:
    project = store.find_project(project_id)
    if project is None:
        logger.warning("Project not found", extra={"data": {"project_id": project_id}})
        return None, None
    task = project.find_task(task_id)
    if task is None:
        logger.warning("Task not found", extra={"data": {"project_id": project_id, "task_id": task_id}})
        return project, None
    return project, task


def _load_subtask(
    store: WorkspaceStore, project_id: str, task_id: str, subtask_id: str
) -> Tuple[Optional[ProjectModel], Optional[TaskModel], Optional[SubtaskModel]]:
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return project, None, None
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        logger.warning("Subtask not found", extra={"data": {"task_id": task_id, "subtask_id": subtask_id}})
    return project, task, subtask


def _touch_task(project: ProjectModel, task: TaskModel, now: datetime, preview: str) -> None:
    task.last_activity = now
    touch(project, now, preview)


# ─── Tasks ────────────────────────────────────────────────────────────────────

def create_task(
    store: WorkspaceStore,
    project_id: str,
    actor: UserModel,
    title: str,
    assignees: Optional[List[UserModel]] = None,
    subtasks: Optional[List[SubtaskModel]] = None,
    due_date: Optional[datetime] = None,
    notes: Optional[str] = None,
    attachments: Optional[List[AttachmentModel]] = None,
) -> Optional[TaskModel]:
    """Create a task, announce it in chat and flag it unread for everyone but the creator."""
    if not title or not title.strip():
        logger.debug("Blank task title ignored", extra={"data": {"project_id": project_id}})
        return None

    project = store.find_project(project_id)
    if project is None:
        logger.warning("Task for unknown project", extra={"data": {"project_id": project_id}})
        return None

    now = store.now()
    task = TaskModel(
        title=title,
        assignees=list(assignees or []),
        due_date=due_date,
        created_at=now,
        subtasks=list(subtasks or []),
        attachments=list(attachments or []),
        notes=_clean(notes),
        created_by=actor,
    )
    project.tasks.append(task)

    post_message(project, actor, f"created task \"{title}\"", now, referenced_task=TaskReference.from_task(task))
    touch(project, now, f"New task: {title}")
    project.mark_unread_for_members(task.id, except_user_id=actor.id)

    store.upsert_project(project)
    store.add_activity(ActivityTypes.TASK_CREATED, actor, project, task=task, timestamp=now)
    for assignee in task.assignees:
        store.add_activity(ActivityTypes.TASK_ASSIGNED, actor, project, task=task, timestamp=now, assignee=assignee)

    logger.info("Task created", extra={"data": {
        "project_id": project_id,
        "task_id": task.id,
        "title": title,
        "assignees": [u.id for u in task.assignees],
    }})
    return task


def toggle_status(store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str) -> Optional[TaskModel]:
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    task.status = 'done' if task.status == 'pending' else 'pending'
    is_done = task.status == 'done'
    now = store.now()

    verb = "completed" if is_done else "reopened"
    post_message(project, actor, f"{verb} task \"{task.title}\"", now, referenced_task=TaskReference.from_task(task))
    _touch_task(project, task, now, f"{'Completed' if is_done else 'Reopened'}: {task.title}")
    project.mark_unread_for_members(task.id, except_user_id=actor.id)

    store.upsert_project(project)
    store.add_activity(
        ActivityTypes.TASK_COMPLETED if is_done else ActivityTypes.TASK_REOPENED,
        actor, project, task=task, timestamp=now,
    )

    logger.info(f"Task {verb}", extra={"data": {"task_id": task.id, "status": task.status}})
    return task


def accept_task(
    store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str, message: Optional[str] = None
) -> Optional[TaskModel]:
    """Acknowledge an assignment. Assignees are left untouched."""
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    task.acknowledged_by.add(actor.id)
    now = store.now()

    note = _clean(message)
    content = f"{ACCEPTED_PREFIX}: {note}" if note else ACCEPTED_PREFIX
    post_message(project, actor, content, now, referenced_task=TaskReference.from_task(task))
    touch(project, now, f"{actor.first_name} accepted {task.title}")

    store.upsert_project(project)
    logger.info("Task accepted", extra={"data": {"task_id": task.id, "user_id": actor.id}})
    return task


def decline_task(
    store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str, reason: Optional[str] = None
) -> Optional[TaskModel]:
    """Give an assignment back. The task stays even with nobody left on it."""
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    now = store.now()
    note = _clean(reason)
    content = f"{DECLINED_PREFIX}: {note}" if note else DECLINED_PREFIX
    post_message(project, actor, content, now, referenced_task=TaskReference.from_task(task))

    task.assignees = [u for u in task.assignees if u.id != actor.id]
    touch(project, now, f"{actor.first_name} declined {task.title}")

    store.upsert_project(project)
    logger.info("Task declined", extra={"data": {"task_id": task.id, "user_id": actor.id, "reason": note}})
    return task


def ask_question(
    store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str, message: str
) -> Optional[TaskModel]:
    # Callers reject empty questions before getting here
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    now = store.now()
    post_message(project, actor, message, now, referenced_task=TaskReference.from_task(task))
    touch(project, now, f"{actor.first_name}: {message}")
    store.upsert_project(project)
    return task


def ask_subtask_question(
    store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str, subtask_id: str, message: str
) -> Optional[SubtaskModel]:
    project, task, subtask = _load_subtask(store, project_id, task_id, subtask_id)
    if subtask is None:
        return None

    now = store.now()
    post_message(
        project, actor, message, now,
        referenced_task=TaskReference.from_task(task),
        referenced_subtask=SubtaskReference.from_subtask(subtask),
    )
    touch(project, now, f"{actor.first_name}: {message}")
    store.upsert_project(project)
    return subtask


def update_task(
    store: WorkspaceStore,
    project_id: str,
    task_id: str,
    title: Optional[str] = None,
    due_date=UNSET,
    notes=UNSET,
) -> Optional[TaskModel]:
    if title is not None and not title.strip():
        logger.debug("Blank task title ignored", extra={"data": {"task_id": task_id}})
        return None

    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    if title is not None:
        task.title = title
    if due_date is not UNSET:
        task.due_date = due_date
    if notes is not UNSET:
        task.notes = _clean(notes)
    task.last_activity = store.now()

    store.upsert_project(project)
    return task


def toggle_task_assignee(
    store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str, user: UserModel
) -> Optional[TaskModel]:
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    if task.is_assigned(user.id):
        task.assignees = [u for u in task.assignees if u.id != user.id]
        store.upsert_project(project)
        return task

    task.assignees.append(user)
    if project.is_member(user.id) and user.id != actor.id:
        project.add_unread_task(task.id, user.id)
    store.upsert_project(project)
    store.add_activity(ActivityTypes.TASK_ASSIGNED, actor, project, task=task, assignee=user)
    return task


def delete_task(store: WorkspaceStore, project_id: str, task_id: str) -> bool:
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return False

    project.tasks = [t for t in project.tasks if t.id != task_id]
    project.forget_task(task_id)
    for attachment in project.attachments:
        if attachment.linked_task_id == task_id:
            # Files stay in the project, just no longer grouped under the task
            attachment.linked_task_id = None
            attachment.linked_subtask_id = None

    store.upsert_project(project)
    logger.info("Task deleted", extra={"data": {"project_id": project_id, "task_id": task_id}})
    return True


def mark_task_as_read(store: WorkspaceStore, project_id: str, task_id: str, user_id: str) -> bool:
    """Clear the unread badge only. Read is not the same as acknowledged."""
    project = store.find_project(project_id)
    if project is None or not project.is_task_unread(task_id, user_id):
        return False
    project.mark_task_as_read(task_id, user_id)
    store.upsert_project(project)
    return True


def new_tasks_for(project: ProjectModel, user_id: str) -> List[TaskModel]:
    return [t for t in project.tasks if t.is_new(user_id)]


# ─── Task attachments ─────────────────────────────────────────────────────────

def add_task_attachment(
    store: WorkspaceStore, project_id: str, task_id: str, attachment: AttachmentModel
) -> Optional[AttachmentModel]:
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None
    if attachment.linked_subtask_id and task.find_subtask(attachment.linked_subtask_id) is None:
        logger.warning("Attachment linked to unknown subtask", extra={"data": {
            "task_id": task_id, "subtask_id": attachment.linked_subtask_id,
        }})
        return None

    task.attachments.append(attachment)
    task.last_activity = store.now()
    store.upsert_project(project)
    return attachment


def remove_task_attachment(store: WorkspaceStore, project_id: str, task_id: str, attachment_id: str) -> bool:
    project, task = _load_task(store, project_id, task_id)
    if task is None or not any(a.id == attachment_id for a in task.attachments):
        return False
    task.attachments = [a for a in task.attachments if a.id != attachment_id]
    store.upsert_project(project)
    return True


# ─── Subtasks ─────────────────────────────────────────────────────────────────

def toggle_subtask_status(
    store: WorkspaceStore, project_id: str, actor: UserModel, task_id: str, subtask_id: str
) -> Optional[SubtaskModel]:
    project, task, subtask = _load_subtask(store, project_id, task_id, subtask_id)
    if subtask is None:
        return None

    subtask.is_done = not subtask.is_done
    now = store.now()

    ref = SubtaskReference.from_subtask(subtask)
    if subtask.is_done:
        kind = SubtaskCompletedKind(subtask=ref)
        content = f"completed \"{subtask.title}\""
        preview = f"Completed: {subtask.title}"
    else:
        kind = SubtaskReopenedKind(subtask=ref)
        content = f"reopened \"{subtask.title}\""
        preview = f"Reopened: {subtask.title}"

    post_message(
        project, actor, content, now,
        referenced_task=TaskReference.from_task(task),
        referenced_subtask=ref,
        kind=kind,
    )
    _touch_task(project, task, now, preview)

    store.upsert_project(project)
    logger.info("Subtask toggled", extra={"data": {"subtask_id": subtask_id, "is_done": subtask.is_done}})
    return subtask


def add_subtask(
    store: WorkspaceStore,
    project_id: str,
    actor: UserModel,
    task_id: str,
    title: str,
    description: Optional[str] = None,
    assignees: Optional[List[UserModel]] = None,
    due_date: Optional[datetime] = None,
) -> Optional[SubtaskModel]:
    if not title or not title.strip():
        return None
    project, task = _load_task(store, project_id, task_id)
    if task is None:
        return None

    subtask = SubtaskModel(
        title=title,
        description=_clean(description),
        assignees=list(assignees or []),
        due_date=due_date,
        created_by=actor,
        created_at=store.now(),
    )
    task.subtasks.append(subtask)
    store.upsert_project(project)
    return subtask


def delete_subtask(store: WorkspaceStore, project_id: str, task_id: str, subtask_id: str) -> bool:
    project, task, subtask = _load_subtask(store, project_id, task_id, subtask_id)
    if subtask is None:
        return False
    task.subtasks = [s for s in task.subtasks if s.id != subtask_id]
    store.upsert_project(project)
    return True


def update_subtask(
    store: WorkspaceStore,
    project_id: str,
    task_id: str,
    subtask_id: str,
    title: Optional[str] = None,
    description=UNSET,
    due_date=UNSET,
) -> Optional[SubtaskModel]:
    if title is not None and not title.strip():
        return None
    project, task, subtask = _load_subtask(store, project_id, task_id, subtask_id)
    if subtask is None:
        return None

    if title is not None:
        subtask.title = title
    if description is not UNSET:
        subtask.description = _clean(description)
    if due_date is not UNSET:
        subtask.due_date = due_date

    store.upsert_project(project)
    return subtask


def toggle_subtask_assignee(
    store: WorkspaceStore, project_id: str, task_id: str, subtask_id: str, member: UserModel
) -> Optional[SubtaskModel]:
    project, task, subtask = _load_subtask(store, project_id, task_id, subtask_id)
    if subtask is None:
        return None

    if subtask.is_assigned(member.id):
        subtask.assignees = [u for u in subtask.assignees if u.id != member.id]
    else:
        subtask.assignees.append(member)

    store.upsert_project(project)
    return subtask


def set_subtask_assignees(
    store: WorkspaceStore, project_id: str, task_id: str, subtask_id: str, assignees: List[UserModel]
) -> Optional[SubtaskModel]:
    project, task, subtask = _load_subtask(store, project_id, task_id, subtask_id)
    if subtask is None:
        return None

    unique = []
    for user in assignees:
        if not any(u.id == user.id for u in unique):
            unique.append(user)
    subtask.assignees = unique

    store.upsert_project(project)
    return subtask
