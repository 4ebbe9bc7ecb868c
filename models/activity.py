from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime
import uuid

from utils.dates import utcnow

ActivityType = Literal['task_assigned', 'task_completed', 'task_reopened', 'task_created', 'message_sent']


def _first_name(name: str) -> str:
    parts = name.split()
    return parts[0] if parts else name


class ActivityModel(BaseModel):
    """Timeline entry for something a member did. Written once, never edited."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: ActivityType
    timestamp: datetime = Field(default_factory=utcnow)

    # Who
    actor_id: str
    actor_name: str
    assignee_id: Optional[str] = None # task_assigned only
    assignee_name: Optional[str] = None

    # Where
    project_id: str
    project_name: str
    task_id: Optional[str] = None
    task_title: Optional[str] = None

    # What
    message_preview: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def description_for(self, viewer_id: Optional[str] = None) -> str:
        """One-line text for the feed, worded for whoever is reading it."""
        actor = _first_name(self.actor_name)
        task_title = self.task_title or "a task"
        if self.type == 'task_assigned':
            if self.assignee_id is None or self.assignee_id == viewer_id:
                return f"{actor} assigned you: {task_title}"
            return f"{actor} assigned {_first_name(self.assignee_name or 'someone')}: {task_title}"
        if self.type == 'task_completed':
            return f"{actor} completed: {task_title}"
        if self.type == 'task_reopened':
            return f"{actor} reopened: {task_title}"
        if self.type == 'task_created':
            return f"{actor} created: {task_title}"
        if self.type == 'message_sent':
            return f"{actor}: {self.message_preview or 'sent a message'}"
        raise ValueError(f"Unknown activity type: {self.type!r}")
