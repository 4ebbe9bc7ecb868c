"""
Chat message models.

Everything a message points at (tasks, subtasks, quoted messages, shared files) is
held as a frozen snapshot taken when the message was written. Renaming a task later
must not rewrite chat history, so none of these are resolved against the project.
"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, Literal, Union, FrozenSet, Annotated
from datetime import datetime
import uuid

from models.user import UserModel
from models.task import TaskModel, SubtaskModel, AttachmentModel, AttachmentType
from utils.dates import utcnow


class TaskReference(BaseModel):
    task_id: str
    task_title: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_task(cls, task: TaskModel) -> "TaskReference":
        return cls(task_id=task.id, task_title=task.title)


class SubtaskReference(BaseModel):
    subtask_id: str
    subtask_title: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_subtask(cls, subtask: SubtaskModel) -> "SubtaskReference":
        return cls(subtask_id=subtask.id, subtask_title=subtask.title)


class QuotedMessage(BaseModel):
    message_id: str
    sender_name: str
    content: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_message(cls, message: "MessageModel") -> "QuotedMessage":
        return cls(
            message_id=message.id,
            sender_name=message.sender.first_name,
            content=message.content,
        )


class MessageAttachment(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: AttachmentType
    file_name: str
    file_size: int = 0
    thumbnail_url: Optional[str] = None
    file_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_attachment(cls, attachment: AttachmentModel) -> "MessageAttachment":
        return cls(
            id=attachment.id,
            type=attachment.type,
            file_name=attachment.file_name,
            file_size=attachment.file_size,
            thumbnail_url=attachment.thumbnail_url,
            file_url=attachment.file_url,
        )


# --- Message kinds (tagged union) ---

class RegularKind(BaseModel):
    kind: Literal['regular'] = 'regular'

    model_config = ConfigDict(frozen=True)


class SubtaskCompletedKind(BaseModel):
    kind: Literal['subtask_completed'] = 'subtask_completed'
    subtask: SubtaskReference

    model_config = ConfigDict(frozen=True)


class SubtaskReopenedKind(BaseModel):
    kind: Literal['subtask_reopened'] = 'subtask_reopened'
    subtask: SubtaskReference

    model_config = ConfigDict(frozen=True)


MessageKind = Annotated[
    Union[RegularKind, SubtaskCompletedKind, SubtaskReopenedKind],
    Field(discriminator="kind"),
]


class MessageModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    sender: UserModel
    timestamp: datetime = Field(default_factory=utcnow)
    is_from_current_user: bool = False

    # Snapshots
    referenced_task: Optional[TaskReference] = None
    referenced_subtask: Optional[SubtaskReference] = None
    quoted_message: Optional[QuotedMessage] = None
    attachment: Optional[MessageAttachment] = None

    kind: MessageKind = Field(default_factory=RegularKind)
    read_by: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _sender_has_read(self) -> "MessageModel":
        # Sender has always read their own message
        if self.sender.id not in self.read_by:
            object.__setattr__(self, "read_by", self.read_by | {self.sender.id})
        return self

    @property
    def is_system_event(self) -> bool:
        return not isinstance(self.kind, RegularKind)

    def is_read(self, user_id: str) -> bool:
        return user_id in self.read_by

    def read(self, user_id: str) -> "MessageModel":
        """Copy of this message with `user_id` added to the readers."""
        if user_id in self.read_by:
            return self
        return self.model_copy(update={"read_by": self.read_by | {user_id}})
