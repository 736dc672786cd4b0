import pytest

from factories import create_assignment, create_system, create_user_and_role


@pytest.mark.anyio("asyncio")
async def test_create_rule_is_stored_verbatim(client):
    system = await create_system(client, "HR_System")
    resp = await client.post(
        "/api/access-rules",
        json={
            "name": "Nurses get EMR access",
            "integrationSystemId": system["id"],
            "triggerType": "PropertyChange",
            "triggerCondition": "Department == 'Nursing'",
            "actionType": "AssignRole",
            "actionConfiguration": '{"role": "EMR_NURSE"}',
            "priority": 5,
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["integrationSystemName"] == "HR_System"
    assert body["triggerCondition"] == "Department == 'Nursing'"
    assert body["lastExecuted"] is None


@pytest.mark.anyio("asyncio")
async def test_rule_name_unique(client):
    await client.post("/api/access-rules", json={"name": "Rule A"})
    resp = await client.post("/api/access-rules", json={"name": "Rule A"})
    assert resp.status_code == 409


@pytest.mark.anyio("asyncio")
async def test_filter_rules_by_trigger_type(client):
    await client.post("/api/access-rules", json={"name": "Scheduled", "triggerType": "Schedule"})
    await client.post("/api/access-rules", json={"name": "Manual"})

    resp = await client.get("/api/access-rules", params={"triggerType": "Schedule"})
    assert [rule["name"] for rule in resp.json()["items"]] == ["Scheduled"]


@pytest.mark.anyio("asyncio")
async def test_rule_linked_to_assignment_cannot_be_deleted(client):
    system, user, role = await create_user_and_role(client)
    rule = (await client.post("/api/access-rules", json={"name": "Linked"})).json()
    await create_assignment(client, user["id"], role["id"], system["id"], accessRuleIds=[rule["id"]])

    resp = await client.delete(f"/api/access-rules/{rule['id']}")
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["blockedBy"] == "AccessAssignment"


@pytest.mark.anyio("asyncio")
async def test_enum_listings(client):
    triggers = await client.get("/api/access-rules/trigger-types")
    actions = await client.get("/api/access-rules/action-types")
    assert "NewEntity" in [option["value"] for option in triggers.json()]
    assert "SendNotification" in [option["value"] for option in actions.json()]
