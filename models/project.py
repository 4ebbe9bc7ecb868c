from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Set
from datetime import datetime
import uuid

from models.user import UserModel
from models.task import TaskModel, AttachmentModel
from models.message import MessageModel


class ProjectAttachmentModel(AttachmentModel):
    linked_task_id: Optional[str] = None # None = ungrouped

    @property
    def is_ungrouped(self) -> bool:
        return self.linked_task_id is None


class ProjectModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: Optional[str] = None
    members: List[UserModel] = Field(default_factory=list)
    tasks: List[TaskModel] = Field(default_factory=list)
    messages: List[MessageModel] = Field(default_factory=list) # Project-level chat
    attachments: List[ProjectAttachmentModel] = Field(default_factory=list)
    unread_task_ids: Dict[str, Set[str]] = Field(default_factory=dict) # user id -> unread task ids
    last_activity: Optional[datetime] = None
    last_activity_preview: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    # --- Members ---

    @property
    def admin(self) -> Optional[UserModel]:
        # First member is the admin by convention
        return self.members[0] if self.members else None

    def is_member(self, user_id: str) -> bool:
        return any(m.id == user_id for m in self.members)

    def find_member(self, user_id: str) -> Optional[UserModel]:
        return next((m for m in self.members if m.id == user_id), None)

    @property
    def initials(self) -> str:
        parts = self.name.split()
        if len(parts) >= 2:
            return (parts[0][:1] + parts[1][:1]).upper()
        return self.name[:2].upper()

    # --- Tasks ---

    def find_task(self, task_id: str) -> Optional[TaskModel]:
        return next((t for t in self.tasks if t.id == task_id), None)

    @property
    def pending_tasks(self) -> List[TaskModel]:
        """Pending tasks, most recently active first."""
        pending = [t for t in self.tasks if t.status == 'pending']
        return sorted(pending, key=lambda t: t.last_activity, reverse=True)

    @property
    def completed_tasks(self) -> List[TaskModel]:
        done = [t for t in self.tasks if t.status == 'done']
        return sorted(done, key=lambda t: t.last_activity, reverse=True)

    @property
    def pending_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == 'pending')

    @property
    def completed_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == 'done')

    @property
    def overdue_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.is_overdue)

    # --- Unread tracking ---

    def unread_count(self, user_id: str) -> int:
        return len(self.unread_task_ids.get(user_id, ()))

    def is_task_unread(self, task_id: str, user_id: str) -> bool:
        return task_id in self.unread_task_ids.get(user_id, ())

    def mark_task_as_read(self, task_id: str, user_id: str) -> None:
        unread = self.unread_task_ids.get(user_id)
        if unread is not None:
            unread.discard(task_id)

    def add_unread_task(self, task_id: str, user_id: str) -> None:
        self.unread_task_ids.setdefault(user_id, set()).add(task_id)

    def mark_unread_for_members(self, task_id: str, except_user_id: Optional[str] = None) -> None:
        for member in self.members:
            if member.id != except_user_id:
                self.add_unread_task(task_id, member.id)

    def forget_task(self, task_id: str) -> None:
        """Drop a task id from every unread set."""
        for unread in self.unread_task_ids.values():
            unread.discard(task_id)

    # --- Chat ---

    def sorted_messages(self) -> List[MessageModel]:
        """Display order is always ascending by timestamp, whatever the insertion order."""
        return sorted(self.messages, key=lambda m: m.timestamp)

    @property
    def last_message(self) -> Optional[MessageModel]:
        return max(self.messages, key=lambda m: m.timestamp, default=None)

    # --- Attachments ---

    def attachments_by_task(self) -> Dict[Optional[str], List[ProjectAttachmentModel]]:
        """Attachments grouped by linked task id; ungrouped ones sit under None."""
        groups: Dict[Optional[str], List[ProjectAttachmentModel]] = {}
        for attachment in self.attachments:
            groups.setdefault(attachment.linked_task_id, []).append(attachment)
        return groups
