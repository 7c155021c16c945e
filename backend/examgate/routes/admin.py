"""
Admin routes - diagnostic dump and user reset.

These endpoints are unauthenticated; deploy them behind a private network.
"""

from fastapi import APIRouter, Depends

from examgate.database import Store, get_store
from examgate.services import sessions

router = APIRouter()


@router.get("/api/admin/data")
def admin_data(store: Store = Depends(get_store)):
    """Both collections with passwords masked, plus counts."""
    return sessions.admin_list_all(store)


@router.post("/api/admin/reset-user/{name}")
def reset_user(name: str, store: Store = Depends(get_store)):
    """Re-enable a student and discard their result."""
    return sessions.admin_reset_user(store, name)
