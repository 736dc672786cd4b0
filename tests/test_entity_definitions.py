import pytest

from factories import create_definition, create_instance, create_property, create_system


@pytest.mark.anyio("asyncio")
async def test_create_entity_definition_with_counts(client):
    system = await create_system(client, "HR_System")
    resp = await client.post(
        "/api/entity-definitions",
        json={"integrationSystemId": system["id"], "name": "User", "metadata": '{"source": "ldap"}'},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["integrationSystemName"] == "HR_System"
    assert body["metadata"] == '{"source": "ldap"}'
    assert body["propertyDefinitionsCount"] == 0
    assert body["entityInstancesCount"] == 0

    await create_property(client, body["id"], "Email")
    await create_instance(client, body["id"], "EMP001")
    fetched = (await client.get(f"/api/entity-definitions/{body['id']}")).json()
    assert fetched["propertyDefinitionsCount"] == 1
    assert fetched["entityInstancesCount"] == 1


@pytest.mark.anyio("asyncio")
async def test_duplicate_name_in_same_system_conflicts(client):
    system = await create_system(client)
    await create_definition(client, system["id"], "User")

    resp = await client.post("/api/entity-definitions", json={"integrationSystemId": system["id"], "name": "User"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "ENTITY_DEFINITION_NAME_CONFLICT"

    other = await create_system(client)
    assert (
        await client.post("/api/entity-definitions", json={"integrationSystemId": other["id"], "name": "User"})
    ).status_code == 201


@pytest.mark.anyio("asyncio")
async def test_definition_requires_existing_system(client):
    resp = await client.post(
        "/api/entity-definitions",
        json={"integrationSystemId": "00000000-0000-0000-0000-000000000000", "name": "User"},
    )
    assert resp.status_code == 404


@pytest.mark.anyio("asyncio")
async def test_invalid_metadata_is_rejected(client):
    system = await create_system(client)
    resp = await client.post(
        "/api/entity-definitions",
        json={"integrationSystemId": system["id"], "name": "User", "metadata": "{not json"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.anyio("asyncio")
async def test_delete_cascades_to_properties_and_instances(client):
    system = await create_system(client)
    definition = await create_definition(client, system["id"])
    email = await create_property(client, definition["id"], "Email")
    instance = await create_instance(client, definition["id"], "EMP001", values={email["id"]: "a@contoso.com"})
    value_id = instance["propertyValues"][0]["id"]

    resp = await client.delete(f"/api/entity-definitions/{definition['id']}")
    assert resp.status_code == 204

    assert (await client.get(f"/api/entity-definitions/{definition['id']}")).status_code == 404
    assert (await client.get(f"/api/property-definitions/{email['id']}")).status_code == 404
    assert (await client.get(f"/api/entity-instances/{instance['id']}")).status_code == 404
    assert (await client.get(f"/api/property-values/{value_id}")).status_code == 404


@pytest.mark.anyio("asyncio")
async def test_property_definitions_of_definition(client):
    system = await create_system(client)
    definition = await create_definition(client, system["id"])
    await create_property(client, definition["id"], "LastName", sortOrder=2)
    await create_property(client, definition["id"], "FirstName", sortOrder=1)

    resp = await client.get(f"/api/entity-definitions/{definition['id']}/property-definitions")
    assert resp.status_code == 200
    assert [prop["name"] for prop in resp.json()] == ["FirstName", "LastName"]


@pytest.mark.anyio("asyncio")
async def test_list_by_system(client):
    hr = await create_system(client)
    crm = await create_system(client)
    await create_definition(client, hr["id"], "User")
    await create_definition(client, hr["id"], "Role")
    await create_definition(client, crm["id"], "Contact")

    resp = await client.get("/api/entity-definitions", params={"integrationSystemId": hr["id"]})
    page = resp.json()
    assert page["totalCount"] == 2
    assert sorted(item["name"] for item in page["items"]) == ["Role", "User"]
