from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, List
from models.project import ProjectModel
from models.user import UserModel
from services.identity import UserRegistry, registry as default_registry
from store import WorkspaceStore, store as default_store
from logging_config import get_logger, project_id_var
from config import config

logger = get_logger("auth")

# Config from central config
SECRET_KEY = config.SECRET_KEY
ALGORITHM = config.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = config.ACCESS_TOKEN_EXPIRE_MINUTES

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/verify")

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt

def get_store() -> WorkspaceStore:
    return default_store

def get_registry() -> UserRegistry:
    return default_registry

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    registry: UserRegistry = Depends(get_registry),
) -> UserModel:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            logger.warning("Token decoded but missing 'sub' claim")
            raise credentials_exception
    except JWTError as e:
        logger.warning(f"JWT decode failed: {e}")
        raise credentials_exception

    user = registry.get(user_id)
    if user is None:
        logger.warning(f"Token valid but user not registered", extra={"data": {"user_id": user_id}})
        raise credentials_exception

    return user


async def get_project(
    project_id: str,
    current_user: UserModel = Depends(get_current_user),
    store: WorkspaceStore = Depends(get_store),
) -> ProjectModel:
    """Project snapshot for a member of it. Non-members get a 404, same as a missing project."""
    project_id_var.set(project_id)
    project = store.find_project(project_id)
    if project is None or not project.is_member(current_user.id):
        logger.warning("Project not found or not a member", extra={"data": {"project_id": project_id}})
        raise HTTPException(status_code=404, detail="Project not found")
    return project


# ─── Helpers ─────────────────────────────────────────────────────────────────

def resolve_members(project: ProjectModel, user_ids: Optional[List[str]]) -> List[UserModel]:
    """Map ids to project members, keeping order and dropping duplicates."""
    members = []
    for user_id in user_ids or []:
        member = project.find_member(user_id)
        if member is None:
            raise HTTPException(status_code=400, detail=f"User {user_id} is not a project member")
        if member not in members:
            members.append(member)
    return members


def check_permission(allowed: bool, action: str, current_user: UserModel, **context):
    """Edit rules are advisory: log a violation, and only refuse when enforcement is on."""
    if allowed:
        return
    logger.warning(
        f"Permission rule violated: {action}",
        extra={"data": {"user_id": current_user.id, **context}}
    )
    if config.ENFORCE_PERMISSIONS:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
