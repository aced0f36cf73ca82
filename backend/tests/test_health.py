import pytest


@pytest.mark.asyncio
class TestHealth:

    async def test_liveness(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_readiness(self, client):
        response = await client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"] == {
            "service": "ok",
            "database": "ok",
            "redis": "ok",
        }

    async def test_readiness_reports_redis_outage(self, client, redis_client, monkeypatch):
        async def broken_ping():
            raise ConnectionError("redis down")

        monkeypatch.setattr(redis_client, "ping", broken_ping)

        response = await client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["checks"]["redis"].startswith("error")
