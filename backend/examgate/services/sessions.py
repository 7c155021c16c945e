"""
Test-Session Service - state transitions of users and test results.

A student's session is gated by two flags:
- User.can_retake: whether the student may (re)attempt the test
- TestResult.pdf_downloaded: the result is final and locks the student out

Which gives four states: new (no user), active-untested, locked-completed
and reset-for-retake (after a second chance or admin reset).

Every operation receives the Store explicitly and runs in one transaction
holding the locks of the collections it writes. Names are compared
case-insensitively everywhere.
"""

import time
from typing import List, Optional

from sqlalchemy.orm import Session

from examgate.database import Store, next_timestamp_id
from examgate.errors import AuthError, ConflictError, NotFoundError, ValidationError
from examgate.models.test_result import TestResult, dump_json
from examgate.models.user import User, normalize_name
from examgate.logging_config import get_logger, log_with_context
from examgate.timestamps import to_iso, utcnow

auth_logger = get_logger("auth")
results_logger = get_logger("results")
admin_logger = get_logger("admin")

REDACTED_PASSWORD = "***"


# ── Lookups ──────────────────────────────────────────────────

def find_user(db: Session, name: str) -> Optional[User]:
    """Find a user by case-insensitive name."""
    return db.query(User).filter(User.name_key == normalize_name(name)).first()


def find_results(db: Session, name: str) -> List[TestResult]:
    """All results whose student name matches case-insensitively, oldest first."""
    return (
        db.query(TestResult)
        .filter(TestResult.student_name_key == normalize_name(name))
        .order_by(TestResult.id)
        .all()
    )


def delete_results(db: Session, name: str) -> int:
    """Delete every result for a name; returns how many were removed."""
    removed = 0
    for result in find_results(db, name):
        db.delete(result)
        removed += 1
    return removed


def is_truthy(value) -> bool:
    """
    Truthiness as existing clients expect it: only null, false, 0, NaN and
    the empty string are false. Empty lists and objects count as true.
    """
    if value is None or value is False or value == "":
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == value and value != 0
    return True


# ── Serialization ────────────────────────────────────────────

def serialize_user(user: User, redact: bool = True) -> dict:
    """Wire representation of a user; the password is masked unless redact=False."""
    return {
        "id": user.id,
        "name": user.name,
        "password": REDACTED_PASSWORD if redact else user.password,
        "canRetake": bool(user.can_retake),
        "createdAt": to_iso(user.created_at),
    }


def serialize_result(result: TestResult) -> dict:
    """Wire representation of a test result."""
    payload = result.payload
    return {
        "id": result.id,
        "studentName": result.student_name,
        "pattern": payload["pattern"],
        "score": payload["score"],
        "total": payload["total"],
        "answers": payload["answers"],
        "pdfDownloaded": bool(result.pdf_downloaded),
        "submittedAt": to_iso(result.submitted_at),
        "ip": result.ip,
    }


# ── Operations ───────────────────────────────────────────────

def authenticate(store: Store, name: Optional[str], password: Optional[str]) -> dict:
    """
    Log in an existing student or register a new one.

    Returns {"status": "login"|"registered", "user": {"name", "canRetake"}}.

    Raises:
        ValidationError: name or password missing/empty
        AuthError: the name exists with a different password
    """
    if not name or not name.strip() or not password:
        raise ValidationError("Name and password required")

    with store.transaction("users") as db:
        user = find_user(db, name)

        if user:
            if user.password != password:
                log_with_context(auth_logger, "WARNING", "Invalid password for {}".format(user.name),
                                 context={"student_name": user.name})
                raise AuthError("Invalid password")
            log_with_context(auth_logger, "INFO", "Login: {}".format(user.name),
                             context={"student_name": user.name})
            return {
                "status": "login",
                "user": {"name": user.name, "canRetake": bool(user.can_retake)},
            }

        user = User(
            id=next_timestamp_id(db, User),
            name=name.strip(),
            password=password,
            can_retake=True,
            created_at=utcnow(),
        )
        db.add(user)
        log_with_context(auth_logger, "INFO", "Registered new user: {}".format(user.name),
                         context={"student_name": user.name, "user_id": user.id})
        return {
            "status": "registered",
            "user": {"name": user.name, "canRetake": True},
        }


def can_take_test(store: Store, name: str) -> dict:
    """
    Report whether a student may take the test.

    hasCompleted is true when a finalized result exists; canRetake is the
    user's flag masked by hasCompleted.

    Raises:
        NotFoundError: unknown user
    """
    with store.transaction() as db:
        user = find_user(db, name)
        if not user:
            raise NotFoundError("User not found")

        has_completed = any(r.pdf_downloaded for r in find_results(db, name))
        return {
            "canRetake": bool(user.can_retake) and not has_completed,
            "hasCompleted": has_completed,
        }


def submit_test(store: Store, student_name: Optional[str], pattern=None, score=None,
                total=None, answers=None, pdf_downloaded=False,
                client_address: Optional[str] = None) -> dict:
    """
    Save a submission, replacing any previous non-final result for the name.

    A finalized submission (pdf_downloaded) also clears the user's
    can_retake flag. If the user does not exist the result is still saved.

    Raises:
        ValidationError: student_name missing
        ConflictError: a finalized result already exists
    """
    if not student_name or not student_name.strip():
        raise ValidationError("Student name required")

    student_name = student_name.strip()
    start_time = time.time()
    finalized = is_truthy(pdf_downloaded)

    with store.transaction("users", "results") as db:
        existing = find_results(db, student_name)
        if any(r.pdf_downloaded for r in existing):
            log_with_context(results_logger, "WARNING",
                "Rejected resubmission for {}: result already finalized".format(student_name),
                context={"student_name": student_name})
            raise ConflictError("Test already completed and PDF downloaded")

        for previous in existing:
            db.delete(previous)

        result = TestResult(
            id=next_timestamp_id(db, TestResult),
            student_name=student_name,
            pattern=dump_json(pattern),
            score=dump_json(score),
            total=dump_json(total),
            answers=dump_json(answers),
            pdf_downloaded=finalized,
            submitted_at=utcnow(),
            ip=client_address,
        )
        db.add(result)
        result_id = result.id
        replaced = len(existing)

        if finalized:
            user = find_user(db, student_name)
            if user:
                user.can_retake = False
            else:
                log_with_context(results_logger, "WARNING",
                    "Finalized result for unknown user {}".format(student_name),
                    context={"student_name": student_name})

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(results_logger, "INFO",
        "Test result saved for {} (replaced {}, finalized {})".format(student_name, replaced, finalized),
        context={"student_name": student_name, "result_id": result_id},
        extra_data={"ip": client_address, "duration_ms": round(duration_ms, 2)})

    return {"success": True, "message": "Test result saved"}


def _reset_user(db: Session, name: str) -> int:
    """Re-enable a user and drop their results. Returns results removed."""
    user = find_user(db, name)
    if not user:
        raise NotFoundError("User not found")
    user.can_retake = True
    return delete_results(db, name)


def grant_second_chance(store: Store, password: Optional[str], student_name: Optional[str],
                        secret: str) -> dict:
    """
    Reset a student for a retake when the shared secret matches.

    Removes the student's result even if it was finalized.

    Raises:
        AuthError: password does not equal the secret
        ValidationError: student_name missing
        NotFoundError: unknown user
    """
    if password != secret:
        log_with_context(auth_logger, "WARNING", "Invalid second chance password",
                         context={"student_name": student_name})
        raise AuthError("Invalid second chance password")
    if not student_name:
        raise ValidationError("Student name required")

    with store.transaction("users", "results") as db:
        removed = _reset_user(db, student_name)

    log_with_context(auth_logger, "INFO", "Second chance granted to {}".format(student_name),
                     context={"student_name": student_name},
                     extra_data={"results_removed": removed})
    return {"success": True, "message": "Second chance granted, you can retake the test"}


def get_results(store: Store, name: str) -> List[dict]:
    with store.transaction() as db:
        return [serialize_result(r) for r in find_results(db, name)]


def admin_list_all(store: Store) -> dict:
    """Diagnostic dump of both collections with passwords masked."""
    with store.transaction() as db:
        users = db.query(User).order_by(User.id).all()
        results = db.query(TestResult).order_by(TestResult.id).all()
        return {
            "users": [serialize_user(u) for u in users],
            "results": [serialize_result(r) for r in results],
            "totalUsers": len(users),
            "totalTests": len(results),
        }


def admin_reset_user(store: Store, name: str) -> dict:
    """
    Same effect as a second chance, without the secret.

    Raises:
        NotFoundError: unknown user
    """
    with store.transaction("users", "results") as db:
        removed = _reset_user(db, name)

    log_with_context(admin_logger, "INFO", "Admin reset for {}".format(name),
                     context={"student_name": name},
                     extra_data={"results_removed": removed})
    return {"success": True, "message": "User reset successfully"}
