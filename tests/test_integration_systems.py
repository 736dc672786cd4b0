import uuid

import pytest

from factories import create_definition, create_system


@pytest.mark.anyio("asyncio")
async def test_create_and_get_integration_system(client):
    resp = await client.post(
        "/api/integration-systems",
        json={"name": "HR_System", "displayName": "HR", "authenticationType": "LDAP", "contactEmail": "ops@contoso.com"},
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["name"] == "HR_System"
    assert created["authenticationType"] == "LDAP"
    assert created["version"] == 1
    assert created["createdBy"] == "system"
    assert resp.headers["location"].endswith(f"/api/integration-systems/{created['id']}")

    fetched = await client.get(f"/api/integration-systems/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["displayName"] == "HR"
    assert fetched.json()["entityDefinitionCount"] == 0


@pytest.mark.anyio("asyncio")
async def test_duplicate_system_name_conflicts(client):
    await create_system(client, "CRM")
    resp = await client.post("/api/integration-systems", json={"name": "CRM"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INTEGRATION_SYSTEM_NAME_CONFLICT"


@pytest.mark.anyio("asyncio")
async def test_name_reusable_after_soft_delete(client):
    system = await create_system(client, "Legacy")
    assert (await client.delete(f"/api/integration-systems/{system['id']}")).status_code == 204
    assert (await client.get(f"/api/integration-systems/{system['id']}")).status_code == 404

    again = await client.post("/api/integration-systems", json={"name": "Legacy"})
    assert again.status_code == 201


@pytest.mark.anyio("asyncio")
async def test_update_requires_current_version(client):
    system = await create_system(client, "ERP")
    body = {"name": "ERP", "displayName": "ERP v2", "version": 1}

    first = await client.put(f"/api/integration-systems/{system['id']}", json=body)
    assert first.status_code == 200
    assert first.json()["version"] == 2
    assert first.json()["updatedBy"] == "system"

    stale = await client.put(f"/api/integration-systems/{system['id']}", json=body)
    assert stale.status_code == 409
    error = stale.json()["error"]
    assert error["code"] == "CONCURRENCY_CONFLICT"
    assert error["details"] == {"expectedVersion": 1, "currentVersion": 2}


@pytest.mark.anyio("asyncio")
async def test_delete_blocked_by_entity_definitions(client):
    system = await create_system(client)
    await create_definition(client, system["id"])

    resp = await client.delete(f"/api/integration-systems/{system['id']}")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "DEPENDENCY_CONFLICT"


@pytest.mark.anyio("asyncio")
async def test_list_filters_and_search(client):
    await create_system(client, "HR_Main")
    await create_system(client, "HR_Backup", isActive=False)
    await create_system(client, "Billing")

    resp = await client.get("/api/integration-systems", params={"search": "hr_"})
    assert resp.status_code == 200
    page = resp.json()
    assert page["totalCount"] == 2
    assert page["pageNumber"] == 1
    assert page["pageSize"] == 10

    active = await client.get("/api/integration-systems", params={"search": "HR", "isActive": "true"})
    assert [item["name"] for item in active.json()["items"]] == ["HR_Main"]


@pytest.mark.anyio("asyncio")
async def test_unknown_system_returns_404(client):
    resp = await client.get(f"/api/integration-systems/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "INTEGRATION_SYSTEM_NOT_FOUND"


@pytest.mark.anyio("asyncio")
async def test_authentication_types_listing(client):
    resp = await client.get("/api/integration-systems/authentication-types")
    assert resp.status_code == 200
    assert {"value": "OAuth2", "name": "OAUTH2"} in resp.json()
