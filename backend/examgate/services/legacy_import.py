"""
Legacy import - loads the flat-file deployment into the store.

The previous deployment kept two JSON files next to the server:
- users.json:        [{id, name, password, canRetake, createdAt}, ...]
- testResults.json:  [{id, studentName, pattern, score, total, answers,
                       pdfDownloaded, submittedAt, ip}, ...]

Unreadable or corrupt files are treated as empty collections and logged;
they never abort the import. The usual invariants still apply: one user
per case-insensitive name and one result per student, where a finalized
result is never overwritten.
"""

import json
import os
import time
from typing import List

from examgate.database import Store, next_timestamp_id
from examgate.models.test_result import TestResult, dump_json
from examgate.models.user import User
from examgate.services.sessions import find_results, find_user, is_truthy
from examgate.logging_config import get_logger, log_with_context
from examgate.timestamps import parse_timestamp, utcnow

logger = get_logger("db")

USERS_FILE = "users.json"
RESULTS_FILE = "testResults.json"


def read_collection(path: str) -> List[dict]:
    """
    Read a JSON array of objects from disk.

    Returns [] when the file is missing, unreadable, not valid JSON or not
    an array. Non-object entries are dropped.
    """
    if not os.path.exists(path):
        log_with_context(logger, "WARNING", "Collection file not found: {}".format(path))
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        log_with_context(logger, "ERROR", "Error reading {}; treating as empty".format(path),
                         extra_data={"error": str(e)})
        return []

    if not isinstance(data, list):
        log_with_context(logger, "ERROR", "{} does not hold a JSON array; treating as empty".format(path),
                         extra_data={"type": type(data).__name__})
        return []
    return [record for record in data if isinstance(record, dict)]


def _record_id(db, model, value) -> int:
    """Keep the legacy id when it is an unused integer, else allocate one."""
    if isinstance(value, int) and not isinstance(value, bool):
        if db.get(model, value) is None:
            return value
    return next_timestamp_id(db, model)


def import_users(store: Store, records: List[dict]) -> dict:
    """Insert users whose name is not present yet. Returns counts."""
    imported = 0
    skipped = 0

    with store.transaction("users") as db:
        for record in records:
            name = record.get("name")
            password = record.get("password")
            if not isinstance(name, str) or not name.strip() or not isinstance(password, str) or not password:
                skipped += 1
                continue
            if find_user(db, name):
                skipped += 1
                continue

            db.add(User(
                id=_record_id(db, User, record.get("id")),
                name=name.strip(),
                password=password,
                can_retake=bool(record.get("canRetake", True)),
                created_at=parse_timestamp(record.get("createdAt")) or utcnow(),
            ))
            db.flush()
            imported += 1

    log_with_context(logger, "INFO", "Imported {} users ({} skipped)".format(imported, skipped))
    return {"imported": imported, "skipped": skipped}


def import_results(store: Store, records: List[dict]) -> dict:
    """
    Insert results, keeping one per student. A later record replaces an
    earlier non-final one; a finalized stored result wins. Returns counts.
    """
    imported = 0
    skipped = 0

    with store.transaction("results") as db:
        for record in records:
            student_name = record.get("studentName")
            if not isinstance(student_name, str) or not student_name.strip():
                skipped += 1
                continue

            existing = find_results(db, student_name)
            if any(r.pdf_downloaded for r in existing):
                skipped += 1
                continue
            for previous in existing:
                db.delete(previous)
            db.flush()

            db.add(TestResult(
                id=_record_id(db, TestResult, record.get("id")),
                student_name=student_name.strip(),
                pattern=dump_json(record.get("pattern")),
                score=dump_json(record.get("score")),
                total=dump_json(record.get("total")),
                answers=dump_json(record.get("answers")),
                pdf_downloaded=is_truthy(record.get("pdfDownloaded")),
                submitted_at=parse_timestamp(record.get("submittedAt")) or utcnow(),
                ip=record.get("ip") if isinstance(record.get("ip"), str) else None,
            ))
            db.flush()
            imported += 1

    log_with_context(logger, "INFO", "Imported {} test results ({} skipped)".format(imported, skipped))
    return {"imported": imported, "skipped": skipped}


def import_directory(store: Store, directory: str) -> dict:
    """Import users.json and testResults.json from a directory."""
    start_time = time.time()

    users = import_users(store, read_collection(os.path.join(directory, USERS_FILE)))
    results = import_results(store, read_collection(os.path.join(directory, RESULTS_FILE)))

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Legacy import from {} complete".format(directory),
                     extra_data={"duration_ms": round(duration_ms, 2)})
    return {"users": users, "results": results}
