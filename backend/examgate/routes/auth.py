"""
Authentication routes - login/registration and the second-chance override.
"""

from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from examgate import config
from examgate.database import Store, get_store
from examgate.services import sessions

router = APIRouter()


# ── Pydantic schemas ─────────────────────────────────────────

class AuthRequest(BaseModel):
    """Login or first-time registration. Missing fields are rejected by the service."""
    name: Optional[str] = None
    password: Optional[str] = None


class SecondChanceRequest(BaseModel):
    password: Optional[str] = None
    studentName: Optional[str] = None


@router.post("/api/auth")
def auth(request: AuthRequest, store: Store = Depends(get_store)):
    """Log in with name/password, registering the name if it is new."""
    outcome = sessions.authenticate(store, request.name, request.password)
    message = "Registration successful" if outcome["status"] == "registered" else "Login successful"
    return {"success": True, "message": message, "user": outcome["user"]}


@router.post("/api/verify-second-chance")
def verify_second_chance(request: SecondChanceRequest, store: Store = Depends(get_store)):
    """Reset a student's retake permission when the shared secret matches."""
    return sessions.grant_second_chance(
        store, request.password, request.studentName, config.SECOND_CHANCE_PASSWORD
    )
