"""Tests for middleware components."""
import pytest
from httpx import AsyncClient, ASGITransport
from eventmesh.adapters.memory import InMemoryAdapter
from eventmesh.config import Settings
from eventmesh.main import app
from eventmesh.services.mesh_service import MeshService, get_mesh_service

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def broken_service():
    def factory(token):
        raise RuntimeError("adapter exploded")

    service = MeshService(adapter_factory=factory, settings=Settings())
    app.dependency_overrides[get_mesh_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def empty_service():
    service = MeshService(adapter_factory=lambda token: InMemoryAdapter(), settings=Settings())
    app.dependency_overrides[get_mesh_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_correlation_id_injection(empty_service):
    """Test that correlation ID is auto-generated if not provided."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/v1/eventmesh", headers=AUTH)
        assert response.status_code == 200
        assert response.headers["X-Correlation-ID"]


@pytest.mark.asyncio
async def test_correlation_id_preserved(empty_service):
    """Test that provided correlation ID is preserved."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        correlation_id = "test-correlation-123"
        response = await client.get(
            "/v1/eventmesh",
            headers={**AUTH, "X-Correlation-ID": correlation_id},
        )
        assert response.status_code == 200
        assert response.headers["X-Correlation-ID"] == correlation_id


@pytest.mark.asyncio
async def test_unexpected_error_response(broken_service):
    """Test that unexpected errors are hidden behind a generic 500."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/v1/eventmesh", headers={**AUTH, "X-Correlation-ID": "corr-9"})
        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "InternalServerError"
        assert data["message"] == "An unexpected error occurred"
        assert data["correlation_id"] == "corr-9"
        assert "adapter exploded" not in response.text


@pytest.mark.asyncio
async def test_unauthorized_has_correlation_id():
    """Test that 401 responses carry the correlation ID too."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/v1/eventmesh", headers={"X-Correlation-ID": "corr-401"})
        assert response.status_code == 401
        assert response.json()["correlation_id"] == "corr-401"
        assert response.headers["X-Correlation-ID"] == "corr-401"
