import uuid

import pytest
from sqlalchemy import update

from factories import (
    create_assignment,
    create_definition,
    create_instance,
    create_property,
    create_system,
    create_user_and_role,
)
from rbac_api.models import EntityInstance
from rbac_api.schemas.entity_instance import EntityInstanceUpdate
from rbac_api.services import entity_instances as instance_service
from rbac_api.utils.errors import ConflictError


@pytest.fixture
async def catalog(client):
    system = await create_system(client, "HR_System")
    definition = await create_definition(client, system["id"], "User")
    email = await create_property(client, definition["id"], "Email", "Email", isRequired=True)
    department = await create_property(client, definition["id"], "Department")
    return {"system": system, "definition": definition, "email": email, "department": department}


@pytest.mark.anyio("asyncio")
async def test_create_instance_with_values(client, catalog):
    resp = await client.post(
        "/api/entity-instances",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP001",
            "displayName": "John Doe",
            "propertyValues": [{"propertyDefinitionId": catalog["email"]["id"], "value": "john.doe@contoso.com"}],
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["entityDefinitionName"] == "User"
    assert body["syncStatus"] == "Success"
    assert body["lastSyncedAt"] is not None
    assert len(body["propertyValues"]) == 1
    assert body["propertyValues"][0]["propertyDefinitionName"] == "Email"
    assert resp.headers["location"].endswith(f"/api/entity-instances/{body['id']}")


@pytest.mark.anyio("asyncio")
async def test_missing_required_value_rejected(client, catalog):
    resp = await client.post(
        "/api/entity-instances",
        json={"entityDefinitionId": catalog["definition"]["id"], "externalId": "EMP001"},
    )
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "REQUIRED_PROPERTY_MISSING"
    assert error["details"] == {"properties": ["Email"]}


@pytest.mark.anyio("asyncio")
async def test_invalid_email_value_rejected(client, catalog):
    resp = await client.post(
        "/api/entity-instances",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP001",
            "propertyValues": [{"propertyDefinitionId": catalog["email"]["id"], "value": "not-an-email"}],
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_PROPERTY_VALUE"


@pytest.mark.anyio("asyncio")
async def test_value_for_foreign_property_definition_rejected(client, catalog):
    roles = await create_definition(client, catalog["system"]["id"], "Role")
    role_name = await create_property(client, roles["id"], "RoleName")

    resp = await client.post(
        "/api/entity-instances",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP001",
            "propertyValues": [
                {"propertyDefinitionId": catalog["email"]["id"], "value": "a@contoso.com"},
                {"propertyDefinitionId": role_name["id"], "value": "Admin"},
            ],
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "PROPERTY_DEFINITION_MISMATCH"


@pytest.mark.anyio("asyncio")
async def test_duplicate_external_id_conflicts(client, catalog):
    values = {catalog["email"]["id"]: "a@contoso.com"}
    await create_instance(client, catalog["definition"]["id"], "EMP001", values=values)

    resp = await client.post(
        "/api/entity-instances",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP001",
            "propertyValues": [{"propertyDefinitionId": catalog["email"]["id"], "value": "b@contoso.com"}],
        },
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "ENTITY_INSTANCE_EXTERNAL_ID_CONFLICT"


@pytest.mark.anyio("asyncio")
async def test_default_values_fill_unsupplied_properties(client, catalog):
    await create_property(client, catalog["definition"]["id"], "Country", defaultValue="BE")
    instance = await create_instance(
        client, catalog["definition"]["id"], "EMP001", values={catalog["email"]["id"]: "a@contoso.com"}
    )

    by_name = {value["propertyDefinitionName"]: value for value in instance["propertyValues"]}
    assert by_name["Country"]["value"] == "BE"
    assert by_name["Country"]["isDefault"] is True
    assert by_name["Email"]["isDefault"] is False


@pytest.mark.anyio("asyncio")
async def test_update_replaces_property_values(client, catalog):
    instance = await create_instance(
        client,
        catalog["definition"]["id"],
        "EMP001",
        "John Doe",
        values={catalog["email"]["id"]: "john@contoso.com", catalog["department"]["id"]: "IT"},
    )
    email_value = next(v for v in instance["propertyValues"] if v["propertyDefinitionName"] == "Email")
    department_value = next(v for v in instance["propertyValues"] if v["propertyDefinitionName"] == "Department")

    resp = await client.put(
        f"/api/entity-instances/{instance['id']}",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP001",
            "displayName": "John A. Doe",
            "version": instance["version"],
            "propertyValues": [
                {"id": email_value["id"], "propertyDefinitionId": catalog["email"]["id"], "value": "jad@contoso.com"},
            ],
        },
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["displayName"] == "John A. Doe"
    assert body["version"] == instance["version"] + 1
    assert [(v["id"], v["value"]) for v in body["propertyValues"]] == [(email_value["id"], "jad@contoso.com")]
    assert (await client.get(f"/api/property-values/{department_value['id']}")).status_code == 404

    # Re-adding a removed property creates a new value row.
    readd = await client.put(
        f"/api/entity-instances/{instance['id']}",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP001",
            "displayName": "John A. Doe",
            "version": body["version"],
            "propertyValues": [
                {"id": email_value["id"], "propertyDefinitionId": catalog["email"]["id"], "value": "jad@contoso.com"},
                {"propertyDefinitionId": catalog["department"]["id"], "value": "Finance"},
            ],
        },
    )
    assert readd.status_code == 200, readd.text
    new_department = next(v for v in readd.json()["propertyValues"] if v["propertyDefinitionName"] == "Department")
    assert new_department["id"] != department_value["id"]
    assert new_department["value"] == "Finance"


@pytest.mark.anyio("asyncio")
async def test_update_rejects_value_of_other_instance(client, catalog):
    values = {catalog["email"]["id"]: "a@contoso.com"}
    first = await create_instance(client, catalog["definition"]["id"], "EMP001", values=values)
    second = await create_instance(
        client, catalog["definition"]["id"], "EMP002", values={catalog["email"]["id"]: "b@contoso.com"}
    )

    resp = await client.put(
        f"/api/entity-instances/{second['id']}",
        json={
            "entityDefinitionId": catalog["definition"]["id"],
            "externalId": "EMP002",
            "version": second["version"],
            "propertyValues": [
                {
                    "id": first["propertyValues"][0]["id"],
                    "propertyDefinitionId": catalog["email"]["id"],
                    "value": "c@contoso.com",
                }
            ],
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "PROPERTY_VALUE_NOT_IN_INSTANCE"


@pytest.mark.anyio("asyncio")
async def test_update_rejects_moving_value_to_another_property(client, catalog):
    title = await create_property(client, catalog["definition"]["id"], "Title")
    instance = await create_instance(
        client,
        catalog["definition"]["id"],
        "EMP001",
        values={
            catalog["email"]["id"]: "jane@contoso.com",
            catalog["department"]["id"]: "IT",
            title["id"]: "Engineer",
        },
    )
    by_property = {value["propertyDefinitionName"]: value for value in instance["propertyValues"]}
    body = {
        "entityDefinitionId": catalog["definition"]["id"],
        "externalId": "EMP001",
        "version": instance["version"],
        "propertyValues": [
            {"id": by_property["Email"]["id"], "propertyDefinitionId": catalog["email"]["id"], "value": "jane@contoso.com"},
            {"id": by_property["Department"]["id"], "propertyDefinitionId": title["id"], "value": "IT"},
            {"id": by_property["Title"]["id"], "propertyDefinitionId": catalog["department"]["id"], "value": "Engineer"},
        ],
    }

    swapped = await client.put(f"/api/entity-instances/{instance['id']}", json=body)
    assert swapped.status_code == 400
    assert swapped.json()["error"]["code"] == "PROPERTY_VALUE_DEFINITION_CHANGED"

    body["propertyValues"][1:] = [
        {"propertyDefinitionId": title["id"], "value": "IT"},
        {"propertyDefinitionId": catalog["department"]["id"], "value": "Engineer"},
    ]
    replaced = await client.put(f"/api/entity-instances/{instance['id']}", json=body)
    assert replaced.status_code == 200
    values = {value["propertyDefinitionName"]: value["value"] for value in replaced.json()["propertyValues"]}
    assert values == {"Email": "jane@contoso.com", "Title": "IT", "Department": "Engineer"}


@pytest.mark.anyio("asyncio")
async def test_stale_version_rejected(client, catalog):
    instance = await create_instance(
        client, catalog["definition"]["id"], "EMP001", values={catalog["email"]["id"]: "a@contoso.com"}
    )
    body = {
        "entityDefinitionId": catalog["definition"]["id"],
        "externalId": "EMP001",
        "version": instance["version"],
        "propertyValues": [{"propertyDefinitionId": catalog["email"]["id"], "value": "a@contoso.com"}],
    }
    assert (await client.put(f"/api/entity-instances/{instance['id']}", json=body)).status_code == 200

    stale = await client.put(f"/api/entity-instances/{instance['id']}", json=body)
    assert stale.status_code == 409
    assert stale.json()["error"]["code"] == "CONCURRENCY_CONFLICT"


@pytest.mark.anyio("asyncio")
async def test_concurrent_write_detected_at_flush(client, catalog, db_session):
    created = await create_instance(
        client, catalog["definition"]["id"], "EMP001", "Before", values={catalog["email"]["id"]: "a@contoso.com"}
    )
    instance_id = uuid.UUID(created["id"])
    payload = EntityInstanceUpdate(
        entity_definition_id=uuid.UUID(catalog["definition"]["id"]),
        external_id="EMP001",
        display_name="After",
        version=created["version"],
        property_values=[
            {
                "id": created["propertyValues"][0]["id"],
                "property_definition_id": catalog["email"]["id"],
                "value": "a@contoso.com",
            }
        ],
    )

    # Another writer bumps the row after it was loaded into this session.
    db_session.get(EntityInstance, instance_id)
    with db_session.bind.begin() as connection:
        connection.execute(
            update(EntityInstance).where(EntityInstance.id == instance_id).values(version=EntityInstance.version + 1)
        )

    with pytest.raises(ConflictError) as exc_info:
        instance_service.update_instance(db_session, instance_id, payload)
    assert exc_info.value.code == "CONCURRENCY_CONFLICT"


@pytest.mark.anyio("asyncio")
async def test_pagination_returns_requested_page(client, catalog):
    for index in range(1, 26):
        await create_instance(
            client,
            catalog["definition"]["id"],
            f"EMP{index:03d}",
            f"User {index:02d}",
            values={catalog["email"]["id"]: f"user{index}@contoso.com"},
        )

    resp = await client.get("/api/entity-instances", params={"pageNumber": 2, "pageSize": 10})
    assert resp.status_code == 200
    page = resp.json()
    assert page["totalCount"] == 25
    assert page["pageNumber"] == 2
    assert page["pageSize"] == 10
    assert [item["displayName"] for item in page["items"]] == [f"User {i:02d}" for i in range(11, 21)]


@pytest.mark.anyio("asyncio")
async def test_page_size_above_maximum_rejected(client):
    resp = await client.get("/api/entity-instances", params={"pageSize": 500})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_PAGE_SIZE"


@pytest.mark.anyio("asyncio")
async def test_search_matches_display_name_or_external_id(client, catalog):
    await create_instance(
        client, catalog["definition"]["id"], "EMP001", "Alice", values={catalog["email"]["id"]: "alice@contoso.com"}
    )
    await create_instance(
        client, catalog["definition"]["id"], "EMP002", "Bob", values={catalog["email"]["id"]: "bob@contoso.com"}
    )

    by_name = await client.get("/api/entity-instances", params={"search": "ALI"})
    assert [item["displayName"] for item in by_name.json()["items"]] == ["Alice"]
    by_external_id = await client.get("/api/entity-instances", params={"search": "emp002"})
    assert [item["displayName"] for item in by_external_id.json()["items"]] == ["Bob"]


@pytest.mark.anyio("asyncio")
async def test_delete_blocked_by_access_assignment(client):
    system, user, role = await create_user_and_role(client)
    assignment = await create_assignment(client, user["id"], role["id"], system["id"])

    blocked = await client.delete(f"/api/entity-instances/{user['id']}")
    assert blocked.status_code == 400
    assert blocked.json()["error"]["code"] == "DEPENDENCY_CONFLICT"

    assert (await client.delete(f"/api/access-assignments/{assignment['id']}")).status_code == 204
    assert (await client.delete(f"/api/entity-instances/{user['id']}")).status_code == 204
    assert (await client.get(f"/api/entity-instances/{user['id']}")).status_code == 404
    listed = await client.get("/api/entity-instances")
    assert [item["externalId"] for item in listed.json()["items"]] == ["ROLE_ADMIN"]


@pytest.mark.anyio("asyncio")
async def test_delete_of_assigned_role_blocked(client):
    system, user, role = await create_user_and_role(client)
    assignment = await create_assignment(client, user["id"], role["id"], system["id"])

    blocked = await client.delete(f"/api/entity-instances/{role['id']}")
    assert blocked.status_code == 400
    assert blocked.json()["error"]["code"] == "DEPENDENCY_CONFLICT"
    assert blocked.json()["error"]["details"]["blockedBy"] == "AccessAssignment"

    assert (await client.delete(f"/api/access-assignments/{assignment['id']}")).status_code == 204
    assert (await client.delete(f"/api/entity-instances/{role['id']}")).status_code == 204
    listed = await client.get("/api/entity-instances", params={"search": "ROLE_ADMIN"})
    assert listed.json()["totalCount"] == 0

    archived = await client.get("/api/entity-instances", params={"search": "ROLE_ADMIN", "includeDeleted": "true"})
    [item] = archived.json()["items"]
    assert item["id"] == role["id"]
    assert item["isDeleted"] is True
    assert item["deletedAt"] is not None
