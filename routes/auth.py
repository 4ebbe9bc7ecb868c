from fastapi import APIRouter, Body, HTTPException, Depends
from pydantic import BaseModel
from datetime import datetime, timedelta
from typing import Dict
from models.user import UserModel
from routes.deps import create_access_token, get_current_user, get_registry
from services.auth import AuthSession
from services.identity import UserRegistry
from utils.dates import utcnow
from logging_config import get_logger
from config import config

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
logger = get_logger("auth")

# One pending sign-in per phone number
_sessions: Dict[str, AuthSession] = {}


class CodeRequest(BaseModel):
    phone_number: str = ""


class CodeVerify(BaseModel):
    phone_number: str = ""
    code: str = ""


class ProfileUpdate(BaseModel):
    name: str = ""


def reset_sessions():
    _sessions.clear()


def _prune_sessions(now: datetime) -> None:
    """Forget sign-ins that were started but never finished."""
    cutoff = now - timedelta(minutes=config.VERIFICATION_TTL_MINUTES)
    expired = [phone for phone, s in _sessions.items() if s.requested_at is None or s.requested_at < cutoff]
    for phone in expired:
        del _sessions[phone]
    if expired:
        logger.debug("Expired pending sign-ins dropped", extra={"data": {"count": len(expired)}})


@router.post("/request-code")
async def request_code(payload: CodeRequest = Body(...), registry: UserRegistry = Depends(get_registry)):
    """Start the mock phone sign-in. The code is fixed by config."""
    _prune_sessions(utcnow())
    phone_number = payload.phone_number.strip()
    if not phone_number:
        raise HTTPException(status_code=400, detail="Missing phone number")

    session = AuthSession(registry)
    session.request_verification(phone_number)
    _sessions[phone_number] = session
    return {"message": "Verification code sent", "state": session.state}


@router.post("/verify")
async def verify_code(payload: CodeVerify = Body(...)):
    """
    Checks the code for a pending sign-in.
    - Known phone -> existing user
    - Unknown phone -> a new "New User" is registered
    - Requested too long ago -> treated as never requested
    """
    _prune_sessions(utcnow())
    phone_number = payload.phone_number.strip()

    session = _sessions.get(phone_number)
    if session is None:
        logger.warning("Verification without a pending request", extra={"data": {"phone": phone_number}})
        raise HTTPException(status_code=400, detail="No verification pending for this number")

    if not session.verify_code(payload.code):
        raise HTTPException(status_code=401, detail="Invalid verification code")

    user = session.current_user
    _sessions.pop(phone_number, None)
    access_token = create_access_token(
        data={"sub": user.id},
        expires_delta=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    logger.info("Login successful", extra={"data": {"user_id": user.id}})
    return {"access_token": access_token, "token_type": "bearer", "user": user.model_dump(mode="json")}


@router.get("/me")
async def read_me(current_user: UserModel = Depends(get_current_user)):
    data = current_user.model_dump(mode="json")
    data["initials"] = current_user.initials
    return data


@router.patch("/me")
async def update_me(
    payload: ProfileUpdate = Body(...),
    current_user: UserModel = Depends(get_current_user),
    registry: UserRegistry = Depends(get_registry),
):
    """Profile setup: set the display name."""
    user = registry.rename(current_user.id, payload.name)
    if user is None:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    return user.model_dump(mode="json")
