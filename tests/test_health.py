from fastapi.testclient import TestClient

from taskboard.main import app


def test_health():
    client = TestClient(app)
    assert client.get("/api/health").json() == {"success": True, "message": "ok", "data": None}
