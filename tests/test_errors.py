import pytest
from httpx import ASGITransport, AsyncClient

from rbac_api.main import app


@pytest.mark.anyio("asyncio")
async def test_unexpected_error_does_not_leak_details(monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("database password is hunter2")

    monkeypatch.setattr("rbac_api.services.integration_systems.list_systems", _boom)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/integration-systems")

    assert resp.status_code == 500
    assert resp.json() == {"error": {"code": "INTERNAL_SERVER_ERROR", "message": "An unexpected error occurred."}}
    assert "hunter2" not in resp.text


@pytest.mark.anyio("asyncio")
async def test_request_validation_uses_error_envelope(client):
    resp = await client.post("/api/integration-systems", json={"displayName": "missing name"})
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any(item["loc"][-1] == "name" for item in error["details"]["errors"])


@pytest.mark.anyio("asyncio")
async def test_malformed_id_is_a_validation_error(client):
    resp = await client.get("/api/entity-instances/not-a-uuid")
    assert resp.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_cors_exposes_location_header(client):
    resp = await client.options(
        "/api/integration-systems",
        headers={"Origin": "http://portal.local", "Access-Control-Request-Method": "PATCH"},
    )
    assert resp.status_code == 200
    assert "PATCH" in resp.headers["access-control-allow-methods"]
