import uuid

import pytest

from factories import create_assignment, create_user_and_role


@pytest.mark.anyio("asyncio")
async def test_create_assignment_with_display_names(client):
    system, user, role = await create_user_and_role(client)
    resp = await client.post(
        "/api/access-assignments",
        json={
            "userId": user["id"],
            "roleId": role["id"],
            "targetSystemId": system["id"],
            "assignmentReason": "Onboarding",
            "metadata": '{"ticket": "HR-1"}',
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["userDisplayName"] == "Jane Doe"
    assert body["roleDisplayName"] == "Administrator"
    assert body["targetSystemName"] == system["name"]
    assert body["assignmentType"] == "Direct"
    assert body["metadata"] == '{"ticket": "HR-1"}'
    assert body["isActive"] is True


@pytest.mark.anyio("asyncio")
async def test_duplicate_active_assignment_conflicts(client):
    system, user, role = await create_user_and_role(client)
    await create_assignment(client, user["id"], role["id"], system["id"])

    resp = await client.post(
        "/api/access-assignments", json={"userId": user["id"], "roleId": role["id"], "targetSystemId": system["id"]}
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "ACCESS_ASSIGNMENT_CONFLICT"

    inactive = await client.post(
        "/api/access-assignments",
        json={"userId": user["id"], "roleId": role["id"], "targetSystemId": system["id"], "isActive": False},
    )
    assert inactive.status_code == 201


@pytest.mark.anyio("asyncio")
async def test_unknown_user_rejected(client):
    system, _, role = await create_user_and_role(client)
    resp = await client.post(
        "/api/access-assignments",
        json={"userId": str(uuid.uuid4()), "roleId": role["id"], "targetSystemId": system["id"]},
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "USER_NOT_FOUND"


@pytest.mark.anyio("asyncio")
async def test_effective_window_must_be_ordered(client):
    system, user, role = await create_user_and_role(client)
    resp = await client.post(
        "/api/access-assignments",
        json={
            "userId": user["id"],
            "roleId": role["id"],
            "targetSystemId": system["id"],
            "effectiveFrom": "2025-02-01T00:00:00Z",
            "effectiveTo": "2025-01-01T00:00:00Z",
        },
    )
    assert resp.status_code == 400


@pytest.mark.anyio("asyncio")
async def test_status_patch_toggles_activity(client):
    system, user, role = await create_user_and_role(client)
    assignment = await create_assignment(client, user["id"], role["id"], system["id"])

    resp = await client.patch(
        f"/api/access-assignments/{assignment['id']}/status",
        json={"isActive": False, "version": assignment["version"], "lastModifiedReason": "Left the team"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["isActive"] is False
    assert body["lastModifiedReason"] == "Left the team"

    # With the first one inactive a new active grant is allowed; reactivating the old one is not.
    await create_assignment(client, user["id"], role["id"], system["id"])
    conflict = await client.patch(
        f"/api/access-assignments/{assignment['id']}/status", json={"isActive": True, "version": body["version"]}
    )
    assert conflict.status_code == 409


@pytest.mark.anyio("asyncio")
async def test_assignments_of_user_and_system(client):
    system, user, role = await create_user_and_role(client)
    active = await create_assignment(client, user["id"], role["id"], system["id"])
    inactive = await create_assignment(client, user["id"], role["id"], system["id"], isActive=False)

    only_active = await client.get(f"/api/access-assignments/user/{user['id']}")
    assert [item["id"] for item in only_active.json()] == [active["id"]]

    everything = await client.get(f"/api/access-assignments/system/{system['id']}", params={"includeInactive": "true"})
    assert {item["id"] for item in everything.json()} == {active["id"], inactive["id"]}

    unknown = await client.get(f"/api/access-assignments/user/{uuid.uuid4()}")
    assert unknown.status_code == 404


@pytest.mark.anyio("asyncio")
async def test_update_replaces_rule_links(client):
    system, user, role = await create_user_and_role(client)
    first = (await client.post("/api/access-rules", json={"name": "First"})).json()
    second = (await client.post("/api/access-rules", json={"name": "Second"})).json()
    assignment = await create_assignment(client, user["id"], role["id"], system["id"], accessRuleIds=[first["id"]])
    assert assignment["accessRuleIds"] == [first["id"]]

    resp = await client.put(
        f"/api/access-assignments/{assignment['id']}",
        json={
            "userId": user["id"],
            "roleId": role["id"],
            "targetSystemId": system["id"],
            "accessRuleIds": [second["id"]],
            "version": assignment["version"],
        },
    )
    assert resp.status_code == 200
    assert resp.json()["accessRuleIds"] == [second["id"]]


@pytest.mark.anyio("asyncio")
async def test_search_by_user_display_name(client):
    system, user, role = await create_user_and_role(client)
    await create_assignment(client, user["id"], role["id"], system["id"])

    resp = await client.get("/api/access-assignments", params={"search": "jane"})
    assert resp.json()["totalCount"] == 1
    assert (await client.get("/api/access-assignments", params={"search": "nobody"})).json()["totalCount"] == 0
