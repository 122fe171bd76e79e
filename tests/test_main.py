from fastapi.testclient import TestClient

from app.main import app


class TestHealthEndpoint:
    def test_health_paths(self):
        client = TestClient(app)

        for path in ("/health", "/api/health"):
            response = client.get(path)
            assert response.status_code == 200
            assert response.json()["status"] == "ok"
