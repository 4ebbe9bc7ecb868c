from fastapi import APIRouter, Depends
from typing import List
from models.user import UserModel
from routes.deps import get_current_user, get_registry
from services.identity import UserRegistry
from logging_config import get_logger

router = APIRouter(prefix="/api/users", tags=["Users"])
logger = get_logger("users")

@router.get("", response_model=List[dict])
async def list_users(current_user: UserModel = Depends(get_current_user), registry: UserRegistry = Depends(get_registry)):
    """List all users for member and assignee pickers"""
    return [u.model_dump(mode="json") for u in registry.all()]
