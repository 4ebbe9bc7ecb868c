from fastapi import APIRouter, Body, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import List, Optional
from models.message import SubtaskReference, TaskReference
from models.project import ProjectModel, ProjectAttachmentModel
from models.task import AttachmentType, AttachmentCategory
from models.user import UserModel
from routes.deps import get_current_user, get_project, get_store
from routes.serializers import serialize_message
from services import messaging
from store import WorkspaceStore
from logging_config import get_logger

router = APIRouter(prefix="/api/projects/{project_id}", tags=["Chat"])
logger = get_logger("chat")


class MessageCreate(BaseModel):
    content: str
    task_id: Optional[str] = None
    subtask_id: Optional[str] = None
    quoted_message_id: Optional[str] = None


class SharedFile(BaseModel):
    type: AttachmentType
    category: AttachmentCategory = 'reference'
    file_name: str
    file_size: int = 0
    thumbnail_url: Optional[str] = None
    file_url: Optional[str] = None
    linked_task_id: Optional[str] = None
    linked_subtask_id: Optional[str] = None


class AttachmentShare(BaseModel):
    attachments: List[SharedFile] = Field(default_factory=list)
    caption: Optional[str] = None


@router.get("/messages", response_model=List[dict])
async def list_messages(
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
):
    """Chat stream, oldest first"""
    return [serialize_message(m, current_user.id) for m in messaging.sorted_messages(project)]


@router.post("/messages", status_code=201)
async def send_message(
    payload: MessageCreate = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    if not payload.content.strip():
        raise HTTPException(status_code=400, detail="Message cannot be empty")

    # References are snapshotted now; later renames don't touch this message
    task_ref: Optional[TaskReference] = None
    subtask_ref: Optional[SubtaskReference] = None
    if payload.task_id:
        task = project.find_task(payload.task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Referenced task not found")
        if payload.subtask_id:
            subtask = task.find_subtask(payload.subtask_id)
            if subtask is None:
                raise HTTPException(status_code=404, detail="Referenced subtask not found")
            task_ref, subtask_ref = messaging.reference_subtask(task, subtask)
        else:
            task_ref = messaging.reference_task(task)

    quoted = None
    if payload.quoted_message_id:
        original = next((m for m in project.messages if m.id == payload.quoted_message_id), None)
        if original is None:
            raise HTTPException(status_code=404, detail="Quoted message not found")
        quoted = messaging.quote_message(original)

    message = messaging.send_message(
        store, project.id, current_user, payload.content,
        referenced_task=task_ref,
        referenced_subtask=subtask_ref,
        quoted_message=quoted,
    )
    return serialize_message(message, current_user.id)


@router.post("/messages/read")
async def mark_messages_read(
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    changed = messaging.mark_messages_read(store, project.id, current_user.id)
    return {"message": "All messages marked as read", "updated": changed}


@router.get("/attachments")
async def list_attachments(
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
):
    """Shared files grouped by the task they belong to"""
    groups = []
    for task_id, attachments in project.attachments_by_task().items():
        task = project.find_task(task_id) if task_id else None
        groups.append({
            "task_id": task_id,
            "task_title": task.title if task else None,
            "attachments": [a.model_dump(mode="json") for a in attachments],
        })
    return groups


@router.post("/attachments", status_code=201)
async def share_attachments(
    payload: AttachmentShare = Body(...),
    project: ProjectModel = Depends(get_project),
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
):
    if not payload.attachments:
        raise HTTPException(status_code=400, detail="No attachments to share")

    attachments = [ProjectAttachmentModel(uploaded_by=current_user, **f.model_dump()) for f in payload.attachments]
    messages = messaging.add_attachments(store, project.id, current_user, attachments, payload.caption)
    return [serialize_message(m, current_user.id) for m in messages]
