from typing import List
from models.activity import ActivityModel
from models.message import MessageModel
from models.project import ProjectModel
from models.task import TaskModel
from services.activity import ProjectTaskGroup


def serialize_task(task: TaskModel, user_id: str) -> dict:
    data = task.model_dump(mode="json")
    done, total = task.subtask_progress
    data.update({
        "is_new": task.is_new(user_id),
        "is_overdue": task.is_overdue,
        "is_due_today": task.is_due_today,
        "subtask_progress": {"done": done, "total": total},
    })
    return data


def serialize_message(message: MessageModel, user_id: str) -> dict:
    data = message.model_dump(mode="json")
    # Authorship is relative to whoever is reading
    data["is_from_current_user"] = message.sender.id == user_id
    data["is_read"] = message.is_read(user_id)
    return data


def serialize_project_summary(project: ProjectModel, user_id: str) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "initials": project.initials,
        "member_count": len(project.members),
        "admin_id": project.admin.id if project.admin else None,
        "unread_count": project.unread_count(user_id),
        "pending_task_count": project.pending_task_count,
        "completed_task_count": project.completed_task_count,
        "overdue_task_count": project.overdue_task_count,
        "last_activity": project.last_activity.isoformat() if project.last_activity else None,
        "last_activity_preview": project.last_activity_preview,
    }


def serialize_project(project: ProjectModel, user_id: str) -> dict:
    data = serialize_project_summary(project, user_id)
    data.update({
        "members": [m.model_dump(mode="json") for m in project.members],
        "tasks": [serialize_task(t, user_id) for t in project.pending_tasks + project.completed_tasks],
        "unread_task_ids": sorted(project.unread_task_ids.get(user_id, set())),
        "attachments": [a.model_dump(mode="json") for a in project.attachments],
    })
    return data


def serialize_activity(activity: ActivityModel, user_id: str) -> dict:
    data = activity.model_dump(mode="json")
    data["description"] = activity.description_for(user_id)
    return data


def serialize_groups(groups: List[ProjectTaskGroup], user_id: str) -> List[dict]:
    return [
        {
            "project_id": g.project_id,
            "project_name": g.project_name,
            "tasks": [serialize_task(t, user_id) for t in g.tasks],
        }
        for g in groups
    ]
