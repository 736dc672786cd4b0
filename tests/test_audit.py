import pytest

from factories import create_system
from rbac_api.models import AuditAction, AuditLog
from rbac_api.utils.audit import record_audit, sanitize_payload_for_audit
from rbac_api.utils.errors import ValidationError


@pytest.mark.anyio("asyncio")
async def test_entity_history_newest_first(client):
    system = await create_system(client, "HR_System", connectionString="postgresql://hr:secret@db/hr")
    await client.put(
        f"/api/integration-systems/{system['id']}",
        json={"name": "HR_System", "displayName": "HR", "version": 1, "lastModifiedReason": "Rename"},
    )

    resp = await client.get(f"/api/audit/entity/IntegrationSystem/{system['id']}")
    assert resp.status_code == 200
    page = resp.json()
    assert page["pageSize"] == 50
    assert [entry["action"] for entry in page["items"]] == ["Update", "Insert"]

    update_entry = page["items"][0]
    assert update_entry["justification"] == "Rename"
    assert update_entry["oldValues"]["display_name"] == "System"
    assert update_entry["newValues"]["display_name"] == "HR"
    assert update_entry["requestMethod"] == "PUT"
    assert page["items"][1]["newValues"]["connection_string"] == "postgresql://***"


@pytest.mark.anyio("asyncio")
async def test_caller_identity_and_correlation_are_recorded(client):
    headers = {"X-User-Id": "alice", "X-User-Name": "Alice Admin", "X-Correlation-ID": "corr-123"}
    resp = await client.post("/api/integration-systems", json={"name": "CRM"}, headers=headers)
    assert resp.status_code == 201
    assert resp.headers["X-Correlation-ID"] == "corr-123"
    assert resp.json()["createdBy"] == "alice"

    activity = await client.get("/api/audit/user/alice")
    [entry] = activity.json()["items"]
    assert entry["userName"] == "Alice Admin"
    assert entry["correlationId"] == "corr-123"
    assert entry["entityType"] == "IntegrationSystem"


@pytest.mark.anyio("asyncio")
async def test_entries_record_response_status_and_timing(client):
    system = await create_system(client)
    await client.delete(f"/api/integration-systems/{system['id']}")

    history = (await client.get(f"/api/audit/entity/IntegrationSystem/{system['id']}")).json()
    statuses = {entry["action"]: entry["responseStatusCode"] for entry in history["items"]}
    assert statuses == {"Insert": 201, "Delete": 204}
    assert all(entry["executionTimeMs"] >= 0 for entry in history["items"])


@pytest.mark.anyio("asyncio")
async def test_generated_correlation_id_is_returned(client):
    resp = await client.get("/api/integration-systems")
    assert resp.headers["X-Correlation-ID"]


@pytest.mark.anyio("asyncio")
async def test_search_with_predicates(client):
    system = await create_system(client)
    await client.delete(f"/api/integration-systems/{system['id']}")

    resp = await client.post("/api/audit/search", json={"entityType": "IntegrationSystem", "action": "Delete"})
    assert resp.status_code == 200
    page = resp.json()
    assert page["totalCount"] == 1
    assert page["items"][0]["entityId"] == system["id"]
    assert page["items"][0]["oldValues"]["name"] == system["name"]


@pytest.mark.anyio("asyncio")
async def test_search_rejects_inverted_date_range(client):
    resp = await client.post(
        "/api/audit/search", json={"fromDate": "2025-02-01T00:00:00Z", "toDate": "2025-01-01T00:00:00Z"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_DATE_RANGE"


@pytest.mark.anyio("asyncio")
async def test_compliance_report(client):
    await client.post("/api/integration-systems", json={"name": "A"}, headers={"X-User-Id": "alice"})
    await client.post("/api/integration-systems", json={"name": "B"}, headers={"X-User-Id": "alice"})
    await client.post("/api/integration-systems", json={"name": "C"}, headers={"X-User-Id": "bob"})

    resp = await client.get("/api/audit/compliance-report")
    assert resp.status_code == 200
    report = resp.json()
    assert report["totalActivities"] == 3
    assert report["uniqueUsers"] == 2
    assert report["activitiesByAction"] == {"Insert": 3}
    assert report["activitiesByEntityType"] == {"IntegrationSystem": 3}
    assert report["mostActiveUsers"] == {"alice": 2, "bob": 1}


def test_sanitize_masks_secrets_recursively():
    payload = {
        "connection_string": "Server=db;Password=x",
        "contact_email": "ops@contoso.com",
        "nested": [{"token": "abc", "name": "kept"}],
    }
    sanitized = sanitize_payload_for_audit(payload)
    assert sanitized["connection_string"] == "***"
    assert sanitized["contact_email"] == "***@contoso.com"
    assert sanitized["nested"][0] == {"token": "***", "name": "kept"}


def test_record_audit_requires_identity(db_session):
    with pytest.raises(ValidationError):
        record_audit(
            db_session,
            entity_type="IntegrationSystem",
            entity_id="42",
            action=AuditAction.VIEW,
            user_id=" ",
            correlation_id="corr",
        )

    record_audit(
        db_session,
        entity_type="IntegrationSystem",
        entity_id="42",
        action=AuditAction.EXPORT,
        user_id="auditor",
        correlation_id="corr",
        new_values={"password": "hunter2"},
    )
    db_session.commit()
    entry = db_session.query(AuditLog).filter(AuditLog.entity_id == "42").one()
    assert entry.new_values == {"password": "***"}
