"""
Test routes - eligibility checks, submissions and result lookup.
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from examgate.database import Store, get_store
from examgate.services import sessions

router = APIRouter()


class SubmitTestRequest(BaseModel):
    """
    A test submission. pattern/score/total/answers are stored as given;
    pdfDownloaded marks the result as final.
    """
    studentName: Optional[str] = None
    pattern: Any = None
    score: Any = None
    total: Any = None
    answers: Any = None
    pdfDownloaded: Any = False


def client_address(request: Request) -> Optional[str]:
    """X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded
    return request.client.host if request.client else None


@router.get("/api/can-take-test/{name}")
def can_take_test(name: str, store: Store = Depends(get_store)):
    return sessions.can_take_test(store, name)


@router.post("/api/submit-test")
def submit_test(body: SubmitTestRequest, request: Request, store: Store = Depends(get_store)):
    """Save a submission; rejected once a finalized result exists."""
    return sessions.submit_test(
        store,
        body.studentName,
        pattern=body.pattern,
        score=body.score,
        total=body.total,
        answers=body.answers,
        pdf_downloaded=body.pdfDownloaded,
        client_address=client_address(request),
    )


@router.get("/api/test-results/{name}")
def test_results(name: str, store: Store = Depends(get_store)):
    """All stored results for a student (at most one)."""
    return {"results": sessions.get_results(store, name)}
