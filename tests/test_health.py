import pytest
from sqlalchemy.exc import OperationalError


@pytest.mark.anyio("asyncio")
async def test_healthcheck(client):
    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "rbac-eav-api"
    assert payload["db_status"] == "ok"
    assert payload["migrations_status"] == "up_to_date"
    assert payload["db_ok"] is True
    assert payload["migrations_ok"] is True
    assert payload["in_memory_database"] is False


@pytest.mark.anyio("asyncio")
async def test_health_degrades_on_db_failure(monkeypatch, client):
    class BrokenEngine:
        def connect(self):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr("rbac_api.routers.health.get_engine", lambda: BrokenEngine())

    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["db_status"] == "error"
    assert payload["migrations_status"] == "unknown"
    assert payload["db_ok"] is False
    assert payload["migrations_ok"] is False


@pytest.mark.anyio("asyncio")
async def test_health_status_degraded_when_migrations_behind(monkeypatch, client):
    from rbac_api.routers import health as health_module

    monkeypatch.setattr(health_module, "_migration_head", lambda: "some_future_revision")

    response = await client.get("/health")
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["db_ok"] is True
    assert payload["migrations_status"] == "out_of_date"
