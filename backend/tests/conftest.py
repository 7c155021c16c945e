"""
Shared fixtures: a fresh Store on a temporary SQLite file per test and a
TestClient whose get_store dependency returns it.
"""
import os
import tempfile

# Point the module-level app at a throwaway database before it is imported
_TMP_DIR = tempfile.mkdtemp(prefix="examgate-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "app.db")
os.environ.setdefault("SECOND_CHANCE_PASSWORD", "choice2ellen")

import pytest
from fastapi.testclient import TestClient

from examgate.database import Store, get_store

SECRET = os.environ["SECOND_CHANCE_PASSWORD"]


@pytest.fixture
def store(tmp_path):
    s = Store(f"sqlite:///{tmp_path / 'examgate.db'}")
    s.create_tables()
    yield s
    s.dispose()


@pytest.fixture
def client(store):
    from examgate.main import app

    app.dependency_overrides[get_store] = lambda: store
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_store, None)


@pytest.fixture
def secret():
    return SECRET
