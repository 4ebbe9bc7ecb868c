from fastapi import APIRouter, Depends
from models.user import UserModel
from routes.deps import get_current_user, get_store
from routes.serializers import serialize_activity, serialize_groups
from services import activity as feed
from store import WorkspaceStore
from logging_config import get_logger

router = APIRouter(prefix="/api/activity", tags=["Activity"])
logger = get_logger("activity")


@router.get("")
async def get_activity(current_user: UserModel = Depends(get_current_user), store: WorkspaceStore = Depends(get_store)):
    """What everyone else has been doing, newest first"""
    member_of = {p.id for p in store.list_projects() if p.is_member(current_user.id)}
    return [
        serialize_activity(a, current_user.id)
        for a in feed.activities_for(store, current_user.id)
        if a.project_id in member_of
    ]


@router.get("/inbox")
async def get_new_tasks(current_user: UserModel = Depends(get_current_user), store: WorkspaceStore = Depends(get_store)):
    """Assignments waiting for accept/decline"""
    groups = feed.new_task_inbox(store, current_user.id)
    return {
        "groups": serialize_groups(groups, current_user.id),
        "count": sum(len(g.tasks) for g in groups),
    }


@router.get("/my-tasks")
async def get_my_tasks(current_user: UserModel = Depends(get_current_user), store: WorkspaceStore = Depends(get_store)):
    return {
        "active": serialize_groups(feed.my_tasks_by_project(store, current_user.id), current_user.id),
        "done": serialize_groups(feed.done_tasks_by_project(store, current_user.id), current_user.id),
        "summary": {
            "new": feed.new_task_count(store, current_user.id),
            "done_this_week": feed.done_this_week_count(store, current_user.id),
        },
    }
