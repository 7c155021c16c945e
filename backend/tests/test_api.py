"""
API tests for the HTTP surface: status codes, response shapes, error bodies,
CORS and request IDs. Uses FastAPI TestClient with get_store overridden.
"""
import pytest


def _register(client, name="alice", password="pw"):
    r = client.post("/api/auth", json={"name": name, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


def _submit(client, name, pdf_downloaded=False, **payload):
    body = {"studentName": name, "pattern": "P1", "score": 5, "total": 10,
            "answers": {"1": "A"}, "pdfDownloaded": pdf_downloaded}
    body.update(payload)
    return client.post("/api/submit-test", json=body)


def test_auth_registers_then_logs_in(client):
    data = _register(client)
    assert data == {"success": True, "message": "Registration successful",
                    "user": {"name": "alice", "canRetake": True}}

    data = _register(client, name="Alice")
    assert data["message"] == "Login successful"
    assert data["user"] == {"name": "alice", "canRetake": True}


def test_auth_wrong_password_401(client):
    _register(client)
    r = client.post("/api/auth", json={"name": "alice", "password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid password"}


def test_auth_missing_fields_400(client):
    r = client.post("/api/auth", json={"name": "alice"})
    assert r.status_code == 400
    assert r.json() == {"error": "Name and password required"}


def test_malformed_body_400(client):
    r = client.post("/api/auth", content="not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()

    r = client.post("/api/submit-test", json={"studentName": ["alice"], "score": 1})
    assert r.status_code == 400


def test_can_take_test_unknown_404(client):
    r = client.get("/api/can-take-test/nobody")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


def test_submit_and_lock(client):
    _register(client, "bob", "pw1")

    r = _submit(client, "bob", pdf_downloaded=True)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Test result saved"}

    r = client.get("/api/can-take-test/BOB")
    assert r.json() == {"canRetake": False, "hasCompleted": True}

    r = _submit(client, "bob", pdf_downloaded=False)
    assert r.status_code == 400
    assert r.json() == {"error": "Test already completed and PDF downloaded"}


@pytest.mark.parametrize("flag,locked", [
    (True, True),
    ("done", True),
    (1, True),
    ({}, True),
    ([], True),
    (False, False),
    (0, False),
    ("", False),
    (None, False),
])
def test_pdf_downloaded_follows_client_truthiness(client, flag, locked):
    _register(client, "gina")
    r = _submit(client, "gina", pdf_downloaded=flag)
    assert r.status_code == 200, r.text

    assert client.get("/api/can-take-test/gina").json()["hasCompleted"] is locked
    result = client.get("/api/test-results/gina").json()["results"][0]
    assert result["pdfDownloaded"] is locked


def test_non_ascii_name_over_http(client):
    _register(client, "Ölaf", "pw1")
    r = client.post("/api/auth", json={"name": "Ölaf", "password": "pw2"})
    assert r.status_code == 401

    r = client.get("/api/can-take-test/ölaf")
    assert r.status_code == 200
    assert r.json() == {"canRetake": True, "hasCompleted": False}
    assert client.get("/api/admin/data").json()["totalUsers"] == 1


def test_submit_requires_student_name(client):
    r = client.post("/api/submit-test", json={"score": 1})
    assert r.status_code == 400
    assert r.json() == {"error": "Student name required"}


def test_submit_records_client_address(client):
    _submit(client, "carol")
    results = client.get("/api/test-results/carol").json()["results"]
    assert results[0]["ip"] == "testclient"

    r = client.post("/api/submit-test", json={"studentName": "carol", "score": 7},
                    headers={"X-Forwarded-For": "203.0.113.9"})
    assert r.status_code == 200
    results = client.get("/api/test-results/carol").json()["results"]
    assert len(results) == 1
    assert results[0]["ip"] == "203.0.113.9"
    assert results[0]["score"] == 7


def test_test_results_shape(client):
    _register(client, "dave")
    _submit(client, "dave", pdf_downloaded=True)

    r = client.get("/api/test-results/Dave")
    assert r.status_code == 200
    (result,) = r.json()["results"]
    assert set(result) == {"id", "studentName", "pattern", "score", "total", "answers",
                           "pdfDownloaded", "submittedAt", "ip"}
    assert result["studentName"] == "dave"
    assert result["pdfDownloaded"] is True
    assert result["answers"] == {"1": "A"}


def test_second_chance_flow(client, secret):
    _register(client, "bob", "pw1")
    _submit(client, "bob", pdf_downloaded=True)

    r = client.post("/api/verify-second-chance", json={"password": "guess", "studentName": "bob"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid second chance password"}
    assert client.get("/api/can-take-test/bob").json() == {"canRetake": False, "hasCompleted": True}

    r = client.post("/api/verify-second-chance", json={"password": secret, "studentName": "bob"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Second chance granted, you can retake the test"}
    assert client.get("/api/can-take-test/bob").json() == {"canRetake": True, "hasCompleted": False}
    assert client.get("/api/test-results/bob").json() == {"results": []}

    assert _submit(client, "bob").status_code == 200


def test_second_chance_unknown_user_404(client, secret):
    r = client.post("/api/verify-second-chance", json={"password": secret, "studentName": "ghost"})
    assert r.status_code == 404


def test_admin_data_masks_passwords(client):
    _register(client, "erin", "topsecret")
    _submit(client, "erin")

    r = client.get("/api/admin/data")
    assert r.status_code == 200
    data = r.json()
    assert data["totalUsers"] == 1
    assert data["totalTests"] == 1
    assert data["users"][0]["password"] == "***"
    assert data["users"][0]["canRetake"] is True
    assert "topsecret" not in r.text


def test_admin_reset_user(client):
    _register(client, "frank")
    _submit(client, "frank", pdf_downloaded=True)

    r = client.post("/api/admin/reset-user/FRANK")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "User reset successfully"}
    assert client.get("/api/can-take-test/frank").json() == {"canRetake": True, "hasCompleted": False}

    r = client.post("/api/admin/reset-user/nobody")
    assert r.status_code == 404


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["version"] == "2.0"
    assert data["timestamp"].endswith("Z")


def test_request_id_and_cors_headers(client):
    r = client.get("/api/health", headers={"Origin": "http://example.com"})
    assert r.headers.get("x-request-id")
    assert r.headers.get("access-control-allow-origin") == "*"

    other = client.get("/api/health")
    assert other.headers["x-request-id"] != r.headers["x-request-id"]


def test_root_lists_endpoints(client):
    data = client.get("/").json()
    assert data["health"] == "/api/health"
    assert "POST /api/submit-test" in data["endpoints"].values()
