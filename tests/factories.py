"""Helpers creating catalog records through the public API."""
from __future__ import annotations

from typing import Any
from uuid import uuid4

from httpx import AsyncClient


async def _post(client: AsyncClient, path: str, payload: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(path, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def create_system(client: AsyncClient, name: str | None = None, **overrides: Any) -> dict[str, Any]:
    payload = {"name": name or f"system-{uuid4().hex[:8]}", "displayName": "System"} | overrides
    return await _post(client, "/api/integration-systems", payload)


async def create_definition(client: AsyncClient, system_id: str, name: str = "User", **overrides: Any) -> dict[str, Any]:
    payload = {"integrationSystemId": system_id, "name": name, "displayName": name} | overrides
    return await _post(client, "/api/entity-definitions", payload)


async def create_property(
    client: AsyncClient, definition_id: str, name: str, data_type: str = "String", **overrides: Any
) -> dict[str, Any]:
    payload = {"entityDefinitionId": definition_id, "name": name, "dataType": data_type} | overrides
    return await _post(client, "/api/property-definitions", payload)


async def create_instance(
    client: AsyncClient,
    definition_id: str,
    external_id: str,
    display_name: str | None = None,
    values: dict[str, str] | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    payload = {
        "entityDefinitionId": definition_id,
        "externalId": external_id,
        "displayName": display_name or external_id,
        "propertyValues": [
            {"propertyDefinitionId": prop_id, "value": value} for prop_id, value in (values or {}).items()
        ],
    } | overrides
    return await _post(client, "/api/entity-instances", payload)


async def create_user_and_role(client: AsyncClient) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
    """Return (system, user instance, role instance)."""

    system = await create_system(client)
    users = await create_definition(client, system["id"], "User")
    roles = await create_definition(client, system["id"], "Role")
    user = await create_instance(client, users["id"], "EMP001", "Jane Doe")
    role = await create_instance(client, roles["id"], "ROLE_ADMIN", "Administrator")
    return system, user, role


async def create_assignment(
    client: AsyncClient, user_id: str, role_id: str, system_id: str, **overrides: Any
) -> dict[str, Any]:
    payload = {"userId": user_id, "roleId": role_id, "targetSystemId": system_id} | overrides
    return await _post(client, "/api/access-assignments", payload)
