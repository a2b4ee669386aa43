import pytest
from unittest.mock import AsyncMock, Mock

from app.api.routes.health import get_database_client
from app.core.gateways import get_ollama_client
from app.main import app


def _database(status="healthy", message="Connected successfully", response_time=3):
    database = Mock()
    database.health_check = AsyncMock(
        return_value={"status": status, "message": message, "responseTime": response_time}
    )
    return database


def _ollama(healthy=True):
    client = Mock()
    client.check_health = AsyncMock(return_value=healthy)
    return client


@pytest.fixture
def override_dependencies():
    def apply(database, ollama_client):
        app.dependency_overrides[get_database_client] = lambda: database
        app.dependency_overrides[get_ollama_client] = lambda: ollama_client

    return apply


def test_health_all_services_up(test_client, override_dependencies):
    override_dependencies(_database(), _ollama(True))

    response = test_client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["timestamp"]
    assert body["services"]["database"] == {
        "status": "healthy",
        "message": "Connected successfully",
        "responseTime": 3,
    }
    assert body["services"]["ollama"]["status"] == "healthy"
    assert body["services"]["ollama"]["message"] == "Ollama service is responding"
    assert isinstance(body["totalResponseTime"], int)


def test_health_database_down(test_client, override_dependencies):
    override_dependencies(_database("unhealthy", "connection refused"), _ollama(True))

    response = test_client.get("/api/health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["services"]["database"]["message"] == "connection refused"


def test_health_ollama_down(test_client, override_dependencies):
    override_dependencies(_database(), _ollama(False))

    response = test_client.get("/api/health")

    assert response.status_code == 503
    ollama = response.json()["services"]["ollama"]
    assert ollama["status"] == "unhealthy"
    assert ollama["message"] == "Ollama service is not responding"


def test_health_ollama_probe_raises(test_client, override_dependencies):
    ollama_client = Mock()
    ollama_client.check_health = AsyncMock(side_effect=RuntimeError("socket closed"))
    override_dependencies(_database(), ollama_client)

    response = test_client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["services"]["ollama"]["message"] == "socket closed"
