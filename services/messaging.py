"""
Chat stream for a project: user messages, quotes, task/subtask reference badges,
shared files, and the system messages the lifecycle engine posts.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from constants import ActivityTypes, SHARED_ATTACHMENT_NOUNS
from logging_config import get_logger
from models.message import (
    MessageModel,
    MessageAttachment,
    MessageKind,
    QuotedMessage,
    RegularKind,
    SubtaskCompletedKind,
    SubtaskReference,
    SubtaskReopenedKind,
    TaskReference,
)
from models.project import ProjectModel, ProjectAttachmentModel
from models.task import TaskModel, SubtaskModel
from models.user import UserModel
from store import WorkspaceStore

logger = get_logger("messaging")


def post_message(
    project: ProjectModel,
    sender: UserModel,
    content: str,
    timestamp: datetime,
    referenced_task: Optional[TaskReference] = None,
    referenced_subtask: Optional[SubtaskReference] = None,
    quoted_message: Optional[QuotedMessage] = None,
    attachment: Optional[MessageAttachment] = None,
    kind: Optional[MessageKind] = None,
) -> MessageModel:
    """Append a message to an in-flight project snapshot. The caller upserts."""
    message = MessageModel(
        content=content,
        sender=sender,
        timestamp=timestamp,
        is_from_current_user=True,
        referenced_task=referenced_task,
        referenced_subtask=referenced_subtask,
        quoted_message=quoted_message,
        attachment=attachment,
        kind=kind or RegularKind(),
    )
    project.messages.append(message)
    return message


def touch(project: ProjectModel, timestamp: datetime, preview: str) -> None:
    project.last_activity = timestamp
    project.last_activity_preview = preview


# --- Snapshots ---

def quote_message(message: MessageModel) -> QuotedMessage:
    return QuotedMessage.from_message(message)


def reference_task(task: TaskModel) -> TaskReference:
    return TaskReference.from_task(task)


def reference_subtask(task: TaskModel, subtask: SubtaskModel) -> Tuple[TaskReference, SubtaskReference]:
    return TaskReference.from_task(task), SubtaskReference.from_subtask(subtask)


# --- Operations ---

def send_message(
    store: WorkspaceStore,
    project_id: str,
    sender: UserModel,
    content: str,
    referenced_task: Optional[TaskReference] = None,
    referenced_subtask: Optional[SubtaskReference] = None,
    quoted_message: Optional[QuotedMessage] = None,
) -> Optional[MessageModel]:
    if not content or not content.strip():
        logger.debug("Blank message ignored", extra={"data": {"project_id": project_id}})
        return None

    project = store.find_project(project_id)
    if project is None:
        logger.warning("Message for unknown project", extra={"data": {"project_id": project_id}})
        return None

    now = store.now()
    message = post_message(
        project,
        sender,
        content,
        now,
        referenced_task=referenced_task,
        referenced_subtask=referenced_subtask,
        quoted_message=quoted_message,
    )
    touch(project, now, f"{sender.first_name}: {content}")
    store.upsert_project(project)
    store.add_activity(ActivityTypes.MESSAGE_SENT, sender, project, message_preview=content, timestamp=now)

    logger.info("Message sent", extra={"data": {"project_id": project_id, "message_id": message.id}})
    return message


def shared_attachment_text(attachment_type: str, caption: Optional[str] = None) -> str:
    noun = SHARED_ATTACHMENT_NOUNS.get(attachment_type, "a file")
    text = f"shared {noun}"
    if caption and caption.strip():
        text += f": {caption.strip()}"
    return text


def add_attachments(
    store: WorkspaceStore,
    project_id: str,
    uploader: UserModel,
    attachments: List[ProjectAttachmentModel],
    caption: Optional[str] = None,
) -> List[MessageModel]:
    """Store shared files on the project and post one companion chat message per file."""
    if not attachments:
        return []

    project = store.find_project(project_id)
    if project is None:
        logger.warning("Attachments for unknown project", extra={"data": {"project_id": project_id}})
        return []

    posted = []
    for attachment in attachments:
        now = store.now()
        text_caption = caption if caption is not None else attachment.caption
        stored = attachment.model_copy(update={
            "uploaded_by": uploader,
            "uploaded_at": now,
            "caption": text_caption,
        })
        project.attachments.append(stored)

        task = project.find_task(stored.linked_task_id) if stored.linked_task_id else None
        subtask = task.find_subtask(stored.linked_subtask_id) if task and stored.linked_subtask_id else None

        message = post_message(
            project,
            uploader,
            shared_attachment_text(stored.type, text_caption),
            now,
            referenced_task=TaskReference.from_task(task) if task else None,
            referenced_subtask=SubtaskReference.from_subtask(subtask) if subtask else None,
            attachment=MessageAttachment.from_attachment(stored),
        )
        touch(project, now, f"{uploader.first_name}: {message.content}")
        posted.append(message)

    store.upsert_project(project)
    logger.info("Attachments shared", extra={"data": {"project_id": project_id, "count": len(posted)}})
    return posted


def mark_messages_read(store: WorkspaceStore, project_id: str, user_id: str) -> int:
    """Add `user_id` to every message's readers. Returns how many messages changed."""
    project = store.find_project(project_id)
    if project is None:
        return 0

    changed = 0
    updated = []
    for message in project.messages:
        read = message.read(user_id)
        if read is not message:
            changed += 1
        updated.append(read)

    if changed:
        project.messages = updated
        store.upsert_project(project)
    return changed


def unread_message_count(project: ProjectModel, user_id: str) -> int:
    return sum(1 for m in project.messages if not m.is_read(user_id))


def sorted_messages(project: ProjectModel) -> List[MessageModel]:
    return project.sorted_messages()


def describe_message(message: MessageModel) -> str:
    """One-line rendering of a message, covering every message kind."""
    kind = message.kind
    sender = message.sender.first_name
    if isinstance(kind, RegularKind):
        text = f"{sender}: {message.content}"
        if message.referenced_task is not None:
            text += f" [{message.referenced_task.task_title}]"
        return text
    if isinstance(kind, SubtaskCompletedKind):
        return f"{sender} completed \"{kind.subtask.subtask_title}\""
    if isinstance(kind, SubtaskReopenedKind):
        return f"{sender} reopened \"{kind.subtask.subtask_title}\""
    raise ValueError(f"Unknown message kind: {kind!r}")
