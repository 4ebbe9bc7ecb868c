from fastapi import APIRouter, Body, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from models.project import ProjectModel
from models.task import AttachmentModel, AttachmentType, AttachmentCategory, SubtaskModel
from models.user import UserModel
from routes.deps import get_current_user, get_project, get_store, resolve_members, check_permission
from routes.serializers import serialize_task
from services import lifecycle
from services.permissions import can_edit_task, can_edit_subtask, can_toggle_subtask
from store import WorkspaceStore
from logging_config import get_logger

router = APIRouter(prefix="/api/projects/{project_id}/tasks", tags=["Tasks"])
logger = get_logger("tasks")


# --- REQUEST BODIES ---

class SubtaskDraft(BaseModel):
    title: str
    description: Optional[str] = None
    assignee_ids: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None


class AttachmentDraft(BaseModel):
    type: AttachmentType
    category: AttachmentCategory = 'reference'
    file_name: str
    file_size: int = 0
    thumbnail_url: Optional[str] = None
    file_url: Optional[str] = None
    linked_subtask_id: Optional[str] = None
    caption: Optional[str] = None


class TaskCreate(BaseModel):
    title: str
    assignee_ids: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    subtasks: List[SubtaskDraft] = Field(default_factory=list)
    attachments: List[AttachmentDraft] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class SubtaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    assignee_ids: Optional[List[str]] = None


class AcceptReply(BaseModel):
    message: Optional[str] = None


class DeclineReply(BaseModel):
    reason: Optional[str] = None


class Question(BaseModel):
    message: str = ""


class AssigneeToggle(BaseModel):
    user_id: str


# --- HELPERS ---

def _require_task(project: ProjectModel, task_id: str):
    task = project.find_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _require_subtask(project: ProjectModel, task_id: str, subtask_id: str):
    task = _require_task(project, task_id)
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        raise HTTPException(status_code=404, detail="Subtask not found")
    return task, subtask


def _build_attachment(draft: AttachmentDraft, uploader: UserModel) -> AttachmentModel:
    return AttachmentModel(uploaded_by=uploader, **draft.model_dump())


def _updates(payload: BaseModel, *fields):
    """Only the fields the client actually sent; an explicit null clears the value."""
    return {f: getattr(payload, f) for f in fields if f in payload.model_fields_set}


# --- TASK ENDPOINTS ---

@router.post("", status_code=201)
async def create_task(
    payload: TaskCreate = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    """Create a task. Every other member gets it as unread."""
    assignees = resolve_members(project, payload.assignee_ids)
    subtasks = [
        SubtaskModel(
            title=draft.title,
            description=draft.description,
            assignees=resolve_members(project, draft.assignee_ids),
            due_date=draft.due_date,
            created_by=current_user,
        )
        for draft in payload.subtasks
        if draft.title.strip()
    ]
    attachments = [_build_attachment(draft, current_user) for draft in payload.attachments]

    task = lifecycle.create_task(
        store, project.id, current_user, payload.title,
        assignees=assignees,
        subtasks=subtasks,
        due_date=payload.due_date,
        notes=payload.notes,
        attachments=attachments,
    )
    if task is None:
        raise HTTPException(status_code=400, detail="Task title cannot be empty")
    return serialize_task(task, current_user.id)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
):
    return serialize_task(_require_task(project, task_id), current_user.id)


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskUpdate = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    task = _require_task(project, task_id)
    check_permission(can_edit_task(project, task, current_user), "edit task", current_user, task_id=task_id)

    updated = lifecycle.update_task(store, project.id, task_id, **_updates(payload, "title", "due_date", "notes"))
    if updated is None:
        raise HTTPException(status_code=400, detail="Task title cannot be empty")
    return serialize_task(updated, current_user.id)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    task = _require_task(project, task_id)
    check_permission(can_edit_task(project, task, current_user), "delete task", current_user, task_id=task_id)
    lifecycle.delete_task(store, project.id, task_id)
    return {"message": "Task deleted successfully"}


@router.post("/{task_id}/toggle")
async def toggle_task(
    task_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    task = lifecycle.toggle_status(store, project.id, current_user, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return serialize_task(task, current_user.id)


@router.post("/{task_id}/accept")
async def accept_task(
    task_id: str,
    payload: Optional[AcceptReply] = Body(default=None),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    task = lifecycle.accept_task(store, project.id, current_user, task_id, payload.message if payload else None)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return serialize_task(task, current_user.id)


@router.post("/{task_id}/decline")
async def decline_task(
    task_id: str,
    payload: Optional[DeclineReply] = Body(default=None),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    task = lifecycle.decline_task(store, project.id, current_user, task_id, payload.reason if payload else None)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return serialize_task(task, current_user.id)


@router.post("/{task_id}/question")
async def ask_question(
    task_id: str,
    payload: Question = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Question cannot be empty")
    task = lifecycle.ask_question(store, project.id, current_user, task_id, message)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"message": "Question sent"}


@router.post("/{task_id}/read")
async def mark_task_read(
    task_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _require_task(project, task_id)
    lifecycle.mark_task_as_read(store, project.id, task_id, current_user.id)
    return {"message": "Marked as read"}


@router.post("/{task_id}/assignees")
async def toggle_assignee(
    task_id: str,
    payload: AssigneeToggle = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    task = _require_task(project, task_id)
    check_permission(can_edit_task(project, task, current_user), "change assignees", current_user, task_id=task_id)
    member = resolve_members(project, [payload.user_id])[0]
    updated = lifecycle.toggle_task_assignee(store, project.id, current_user, task_id, member)
    if updated is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return serialize_task(updated, current_user.id)


@router.post("/{task_id}/attachments", status_code=201)
async def add_task_attachment(
    task_id: str,
    payload: AttachmentDraft = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _require_task(project, task_id)
    attachment = lifecycle.add_task_attachment(store, project.id, task_id, _build_attachment(payload, current_user))
    if attachment is None:
        raise HTTPException(status_code=400, detail="Attachment is linked to an unknown subtask")
    return attachment.model_dump(mode="json")


@router.delete("/{task_id}/attachments/{attachment_id}")
async def remove_task_attachment(
    task_id: str,
    attachment_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    if not lifecycle.remove_task_attachment(store, project.id, task_id, attachment_id):
        raise HTTPException(status_code=404, detail="Attachment not found")
    return {"message": "Attachment removed"}


# --- SUBTASK ENDPOINTS ---

@router.post("/{task_id}/subtasks", status_code=201)
async def add_subtask(
    task_id: str,
    payload: SubtaskDraft = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _require_task(project, task_id)
    subtask = lifecycle.add_subtask(
        store, project.id, current_user, task_id, payload.title,
        description=payload.description,
        assignees=resolve_members(project, payload.assignee_ids),
        due_date=payload.due_date,
    )
    if subtask is None:
        raise HTTPException(status_code=400, detail="Subtask title cannot be empty")
    return subtask.model_dump(mode="json")


@router.patch("/{task_id}/subtasks/{subtask_id}")
async def update_subtask(
    task_id: str,
    subtask_id: str,
    payload: SubtaskUpdate = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _, subtask = _require_subtask(project, task_id, subtask_id)
    check_permission(can_edit_subtask(project, subtask, current_user), "edit subtask", current_user, subtask_id=subtask_id)

    changes = _updates(payload, "title", "description", "due_date")
    if changes:
        subtask = lifecycle.update_subtask(store, project.id, task_id, subtask_id, **changes)
        if subtask is None:
            raise HTTPException(status_code=400, detail="Subtask title cannot be empty")
    if payload.assignee_ids is not None:
        subtask = lifecycle.set_subtask_assignees(
            store, project.id, task_id, subtask_id, resolve_members(project, payload.assignee_ids)
        )
    return subtask.model_dump(mode="json")


@router.delete("/{task_id}/subtasks/{subtask_id}")
async def delete_subtask(
    task_id: str,
    subtask_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _, subtask = _require_subtask(project, task_id, subtask_id)
    check_permission(can_edit_subtask(project, subtask, current_user), "delete subtask", current_user, subtask_id=subtask_id)
    lifecycle.delete_subtask(store, project.id, task_id, subtask_id)
    return {"message": "Subtask deleted"}


@router.post("/{task_id}/subtasks/{subtask_id}/toggle")
async def toggle_subtask(
    task_id: str,
    subtask_id: str,
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _, subtask = _require_subtask(project, task_id, subtask_id)
    check_permission(can_toggle_subtask(subtask, current_user), "toggle subtask", current_user, subtask_id=subtask_id)
    subtask = lifecycle.toggle_subtask_status(store, project.id, current_user, task_id, subtask_id)
    return subtask.model_dump(mode="json")


@router.post("/{task_id}/subtasks/{subtask_id}/assignees")
async def toggle_subtask_assignee(
    task_id: str,
    subtask_id: str,
    payload: AssigneeToggle = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    _, subtask = _require_subtask(project, task_id, subtask_id)
    check_permission(can_edit_subtask(project, subtask, current_user), "change subtask assignees", current_user, subtask_id=subtask_id)
    member = resolve_members(project, [payload.user_id])[0]
    subtask = lifecycle.toggle_subtask_assignee(store, project.id, task_id, subtask_id, member)
    return subtask.model_dump(mode="json")


@router.post("/{task_id}/subtasks/{subtask_id}/question")
async def ask_subtask_question(
    task_id: str,
    subtask_id: str,
    payload: Question = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Question cannot be empty")
    _require_subtask(project, task_id, subtask_id)
    lifecycle.ask_subtask_question(store, project.id, current_user, task_id, subtask_id, message)
    return {"message": "Question sent"}
