"""Tests for clients API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _create_client(api_client: AsyncClient, headers: dict[str, str], **fields) -> dict:
    payload = {"first_name": "Alice", "last_name": "Walker", **fields}
    response = await api_client.post("/api/clients", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_and_get_client(api_client: AsyncClient, staff_headers, staff_user) -> None:
    """Create client and fetch it by ID."""
    created = await _create_client(
        api_client, staff_headers, first_name=" Alice ", email="alice@example.com"
    )
    assert created["first_name"] == "Alice"
    assert created["email"] == "alice@example.com"
    assert created["created_by"] == staff_user.id
    assert created["veteran_status"] is False
    assert len(created["access_code"]) == 8
    assert created["access_code_expires"] is not None

    get_response = await api_client.get(f"/api/clients/{created['id']}", headers=staff_headers)
    assert get_response.status_code == 200
    fetched = get_response.json()
    assert fetched["id"] == created["id"]
    assert fetched["last_name"] == "Walker"


@pytest.mark.asyncio
async def test_create_client_requires_names(api_client: AsyncClient, staff_headers) -> None:
    response = await api_client.post(
        "/api/clients", json={"first_name": "Alice"}, headers=staff_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_clients_with_search_and_pagination(
    api_client: AsyncClient, staff_headers
) -> None:
    """Search client list and paginate results."""
    await _create_client(api_client, staff_headers, first_name="Alice", last_name="Walker")
    await _create_client(api_client, staff_headers, first_name="Alicia", last_name="Stone")
    await _create_client(api_client, staff_headers, first_name="Bob", last_name="Summers")

    response = await api_client.get(
        "/api/clients", params={"search": "ali", "limit": 1}, headers=staff_headers
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 2
    assert payload["limit"] == 1
    # Ordered by last name
    assert payload["items"][0]["last_name"] == "Stone"


@pytest.mark.asyncio
async def test_update_client_partial(api_client: AsyncClient, staff_headers) -> None:
    """Patch updates client fields."""
    created = await _create_client(api_client, staff_headers, email="old@example.com")

    patch_response = await api_client.patch(
        f"/api/clients/{created['id']}",
        json={"last_name": "Stone", "email": "new@example.com", "veteran_status": True},
        headers=staff_headers,
    )
    assert patch_response.status_code == 200
    payload = patch_response.json()
    assert payload["first_name"] == "Alice"
    assert payload["last_name"] == "Stone"
    assert payload["email"] == "new@example.com"
    assert payload["veteran_status"] is True


@pytest.mark.asyncio
async def test_update_client_rejects_null_name(api_client: AsyncClient, staff_headers) -> None:
    created = await _create_client(api_client, staff_headers)
    response = await api_client.patch(
        f"/api/clients/{created['id']}", json={"first_name": None}, headers=staff_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_client_not_found(api_client: AsyncClient, staff_headers) -> None:
    """Unknown client ID returns 404."""
    response = await api_client.get("/api/clients/99999", headers=staff_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Client not found"


@pytest.mark.asyncio
async def test_regenerate_access_code(api_client: AsyncClient, staff_headers) -> None:
    created = await _create_client(api_client, staff_headers)

    response = await api_client.post(
        f"/api/clients/{created['id']}/access-code", headers=staff_headers
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["client_id"] == created["id"]
    assert len(payload["access_code"]) == 8

    fetched = await api_client.get(f"/api/clients/{created['id']}", headers=staff_headers)
    assert fetched.json()["access_code"] == payload["access_code"]


@pytest.mark.asyncio
async def test_delete_client_without_assessments(api_client: AsyncClient, staff_headers) -> None:
    created = await _create_client(api_client, staff_headers)

    response = await api_client.delete(f"/api/clients/{created['id']}", headers=staff_headers)
    assert response.status_code == 204

    missing = await api_client.get(f"/api/clients/{created['id']}", headers=staff_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_client_with_assessments_conflicts(
    api_client: AsyncClient, staff_headers
) -> None:
    created = await _create_client(api_client, staff_headers)
    assessment = await api_client.post(
        "/api/assessments", json={"client_id": created["id"]}, headers=staff_headers
    )
    assert assessment.status_code == 201

    response = await api_client.delete(f"/api/clients/{created['id']}", headers=staff_headers)
    assert response.status_code == 409

    listed = await api_client.get(
        f"/api/clients/{created['id']}/assessments", headers=staff_headers
    )
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == [assessment.json()["id"]]
