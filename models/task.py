from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List, Set, Tuple
from datetime import datetime
import os
import uuid

from models.user import UserModel
from utils.dates import utcnow, is_before_today, is_today, is_tomorrow, format_file_size

AttachmentType = Literal['image', 'document', 'video', 'contact']
AttachmentCategory = Literal['reference', 'work']
TaskStatusLiteral = Literal['pending', 'done']


class AttachmentModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: AttachmentType
    category: AttachmentCategory = 'reference'
    file_name: str
    file_size: int = 0 # bytes
    uploaded_by: UserModel
    uploaded_at: datetime = Field(default_factory=utcnow)
    thumbnail_url: Optional[str] = None # For images/videos
    file_url: Optional[str] = None
    linked_subtask_id: Optional[str] = None
    caption: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_instruction(self) -> bool:
        return self.category == 'reference'

    @property
    def is_deliverable(self) -> bool:
        return self.category == 'work'

    @property
    def file_extension(self) -> str:
        return os.path.splitext(self.file_name)[1].lstrip(".").lower()

    @property
    def file_size_formatted(self) -> str:
        return format_file_size(self.file_size)


class SubtaskModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: Optional[str] = None # Instructions/details for this subtask
    is_done: bool = False
    assignees: List[UserModel] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    created_by: Optional[UserModel] = None
    created_at: datetime = Field(default_factory=utcnow)
    attachments: List[AttachmentModel] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_overdue(self) -> bool:
        return not self.is_done and is_before_today(self.due_date)

    @property
    def instruction_attachments(self) -> List[AttachmentModel]:
        return [a for a in self.attachments if a.is_instruction]

    @property
    def deliverable_attachments(self) -> List[AttachmentModel]:
        return [a for a in self.attachments if a.is_deliverable]

    def is_assigned(self, user_id: str) -> bool:
        return any(u.id == user_id for u in self.assignees)


class TaskModel(BaseModel):
    # Core Fields
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    notes: Optional[str] = None # Initial notes added when creating the task

    # State
    status: TaskStatusLiteral = 'pending'

    # Assignment
    assignees: List[UserModel] = Field(default_factory=list)
    created_by: Optional[UserModel] = None
    acknowledged_by: Set[str] = Field(default_factory=set) # user ids who accepted the assignment

    # Timing
    due_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: Optional[datetime] = None

    # Children
    subtasks: List[SubtaskModel] = Field(default_factory=list)
    attachments: List[AttachmentModel] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def model_post_init(self, __context) -> None:
        if self.last_activity is None:
            self.last_activity = self.created_at

    # --- Assignment & acknowledgment ---

    def is_assigned(self, user_id: str) -> bool:
        return any(u.id == user_id for u in self.assignees)

    def is_acknowledged(self, user_id: str) -> bool:
        return user_id in self.acknowledged_by

    def is_new(self, user_id: str) -> bool:
        """A task is new for a user until they accept it, as long as they are assigned."""
        return self.is_assigned(user_id) and not self.is_acknowledged(user_id)

    @property
    def assignee(self) -> Optional[UserModel]:
        return self.assignees[0] if self.assignees else None

    # --- Dates ---

    @property
    def is_overdue(self) -> bool:
        return self.status == 'pending' and is_before_today(self.due_date)

    @property
    def is_due_today(self) -> bool:
        return is_today(self.due_date)

    @property
    def is_due_tomorrow(self) -> bool:
        return is_tomorrow(self.due_date)

    # --- Children ---

    @property
    def subtask_progress(self) -> Tuple[int, int]:
        done = sum(1 for s in self.subtasks if s.is_done)
        return done, len(self.subtasks)

    def find_subtask(self, subtask_id: str) -> Optional[SubtaskModel]:
        return next((s for s in self.subtasks if s.id == subtask_id), None)

    @property
    def reference_attachments(self) -> List[AttachmentModel]:
        return [a for a in self.attachments if a.category == 'reference']

    @property
    def work_attachments(self) -> List[AttachmentModel]:
        return [a for a in self.attachments if a.category == 'work']

    def attachments_for_subtask(self, subtask_id: Optional[str]) -> List[AttachmentModel]:
        return [a for a in self.attachments if a.linked_subtask_id == subtask_id]
