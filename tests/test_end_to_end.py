import pytest


@pytest.mark.anyio("asyncio")
async def test_hr_user_onboarding_flow(client):
    system = await client.post("/api/integration-systems", json={"name": "HR_System", "systemType": "HRIS"})
    assert system.status_code == 201
    system_id = system.json()["id"]

    definition = await client.post(
        "/api/entity-definitions",
        json={"integrationSystemId": system_id, "name": "User", "tableName": "employees", "primaryKeyField": "emp_id"},
    )
    assert definition.status_code == 201
    definition_id = definition.json()["id"]

    email = await client.post(
        "/api/property-definitions",
        json={"entityDefinitionId": definition_id, "name": "Email", "dataType": "Email", "isRequired": True},
    )
    assert email.status_code == 201
    email_id = email.json()["id"]

    instance = await client.post(
        "/api/entity-instances",
        json={
            "entityDefinitionId": definition_id,
            "externalId": "EMP001",
            "displayName": "John Doe",
            "propertyValues": [{"propertyDefinitionId": email_id, "value": "john.doe@contoso.com"}],
        },
    )
    assert instance.status_code == 201
    location = instance.headers["location"]

    fetched = await client.get(location)
    assert fetched.status_code == 200
    body = fetched.json()
    assert body["externalId"] == "EMP001"
    assert body["entityDefinitionName"] == "User"
    [value] = body["propertyValues"]
    assert value["propertyDefinitionName"] == "Email"
    assert value["propertyDataType"] == "Email"
    assert value["value"] == "john.doe@contoso.com"

    history = await client.get(f"/api/audit/entity/EntityInstance/{body['id']}")
    [created] = history.json()["items"]
    assert created["action"] == "Insert"
    assert created["newValues"]["property_values"][0]["value"] == "john.doe@contoso.com"
