import pytest

from factories import create_definition, create_instance, create_property, create_system


@pytest.fixture
async def instance_with_catalog(client):
    system = await create_system(client)
    definition = await create_definition(client, system["id"], "Patient")
    mrn = await create_property(client, definition["id"], "MRN", isUnique=True)
    age = await create_property(client, definition["id"], "Age", "Integer", validationRules='{"min": 0, "max": 150}')
    instance = await create_instance(client, definition["id"], "P-1", "Patient One", values={mrn["id"]: "MRN-1"})
    return {"definition": definition, "mrn": mrn, "age": age, "instance": instance}


@pytest.mark.anyio("asyncio")
async def test_create_value_for_instance(client, instance_with_catalog):
    ctx = instance_with_catalog
    resp = await client.post(
        "/api/property-values",
        json={"entityInstanceId": ctx["instance"]["id"], "propertyDefinitionId": ctx["age"]["id"], "value": "42"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["propertyDefinitionName"] == "Age"
    assert body["propertyDataType"] == "Integer"
    assert body["entityInstanceDisplayName"] == "Patient One"
    assert body["entityDefinitionName"] == "Patient"


@pytest.mark.anyio("asyncio")
async def test_second_value_for_same_property_conflicts(client, instance_with_catalog):
    ctx = instance_with_catalog
    resp = await client.post(
        "/api/property-values",
        json={"entityInstanceId": ctx["instance"]["id"], "propertyDefinitionId": ctx["mrn"]["id"], "value": "MRN-2"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "PROPERTY_VALUE_CONFLICT"


@pytest.mark.anyio("asyncio")
async def test_rules_are_enforced(client, instance_with_catalog):
    ctx = instance_with_catalog
    resp = await client.post(
        "/api/property-values",
        json={"entityInstanceId": ctx["instance"]["id"], "propertyDefinitionId": ctx["age"]["id"], "value": "200"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["reason"] == "MAX"


@pytest.mark.anyio("asyncio")
async def test_unique_property_rejects_value_held_by_other_instance(client, instance_with_catalog):
    ctx = instance_with_catalog
    resp = await client.post(
        "/api/entity-instances",
        json={
            "entityDefinitionId": ctx["definition"]["id"],
            "externalId": "P-2",
            "propertyValues": [{"propertyDefinitionId": ctx["mrn"]["id"], "value": "MRN-1"}],
        },
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "PROPERTY_VALUE_NOT_UNIQUE"


@pytest.mark.anyio("asyncio")
async def test_update_value_checks_version(client, instance_with_catalog):
    value = instance_with_catalog["instance"]["propertyValues"][0]
    body = {"propertyDefinitionId": value["propertyDefinitionId"], "value": "MRN-9", "version": value["version"]}

    updated = await client.put(f"/api/property-values/{value['id']}", json=body)
    assert updated.status_code == 200
    assert updated.json()["value"] == "MRN-9"
    assert updated.json()["version"] == value["version"] + 1

    stale = await client.put(f"/api/property-values/{value['id']}", json=body)
    assert stale.status_code == 409


@pytest.mark.anyio("asyncio")
async def test_expire_closes_validity_window(client, instance_with_catalog):
    value = instance_with_catalog["instance"]["propertyValues"][0]
    resp = await client.patch(f"/api/property-values/{value['id']}/expire")
    assert resp.status_code == 200
    assert resp.json()["effectiveTo"] is not None


@pytest.mark.anyio("asyncio")
async def test_values_of_instance(client, instance_with_catalog):
    ctx = instance_with_catalog
    resp = await client.get(f"/api/property-values/entity-instance/{ctx['instance']['id']}")
    assert resp.status_code == 200
    assert [value["value"] for value in resp.json()] == ["MRN-1"]

    filtered = await client.get("/api/property-values", params={"propertyDefinitionId": ctx["mrn"]["id"]})
    assert filtered.json()["totalCount"] == 1
