import pytest
from httpx import AsyncClient
from fastapi import status

pytestmark = pytest.mark.asyncio


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["environment"] == "test"
        assert "timestamp" in body

    async def test_health_lives_outside_api_prefix(self, client: AsyncClient):
        response = await client.get("/api/health")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_services(self, client: AsyncClient):
        response = await client.get("/health/services")
        assert response.status_code == status.HTTP_200_OK
        services = response.json()["data"]
        assert services["database"] == "connected"
        assert services["storage"] == "not configured"
        assert services["ai"] == "configured"
        assert services["email"] == "not configured"

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/api/nowhere")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"success": False, "message": "Route not found"}
