"""Tests for client portal login."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from src.models.client import Client


async def _portal_client(session_factory, **overrides) -> Client:
    values = {
        "first_name": "Rose",
        "last_name": "Hill",
        "date_of_birth": datetime(1940, 5, 2).date(),
        "access_code": "AB12CD34",
        "access_code_expires": datetime.utcnow() + timedelta(days=30),
        **overrides,
    }
    async with session_factory() as session:
        client = Client(**values)
        session.add(client)
        await session.commit()
        return client


def _login(**overrides) -> dict:
    return {
        "first_name": "rose",
        "last_name": " HILL ",
        "date_of_birth": "1940-05-02",
        "access_code": "ab12cd34",
        **overrides,
    }


@pytest.mark.asyncio
async def test_login_succeeds_and_lists_completed_assessments(
    api_client: AsyncClient, session_factory, staff_headers
) -> None:
    client = await _portal_client(session_factory)
    completed = await api_client.post(
        "/api/assessments", json={"client_id": client.id}, headers=staff_headers
    )
    await api_client.post(
        f"/api/assessments/{completed.json()['id']}/complete", headers=staff_headers
    )
    await api_client.post("/api/assessments", json={"client_id": client.id}, headers=staff_headers)

    response = await api_client.post("/api/portal/login", json=_login())
    assert response.status_code == 200
    payload = response.json()
    assert payload["client_id"] == client.id
    assert [item["id"] for item in payload["assessments"]] == [completed.json()["id"]]
    assert payload["assessments"][0]["status"] == "complete"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"access_code": "ZZ99ZZ99"},
        {"first_name": "Ruth"},
        {"date_of_birth": "1940-05-03"},
    ],
)
async def test_login_rejects_mismatch(
    api_client: AsyncClient, session_factory, overrides
) -> None:
    await _portal_client(session_factory)

    response = await api_client.post("/api/portal/login", json=_login(**overrides))
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid name, date of birth or access code"


@pytest.mark.asyncio
async def test_expired_code_rejected(api_client: AsyncClient, session_factory) -> None:
    await _portal_client(
        session_factory, access_code_expires=datetime.utcnow() - timedelta(minutes=1)
    )

    response = await api_client.post("/api/portal/login", json=_login())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_regenerated_code_replaces_old_one(
    api_client: AsyncClient, session_factory, staff_headers
) -> None:
    client = await _portal_client(session_factory)
    regenerated = await api_client.post(
        f"/api/clients/{client.id}/access-code", headers=staff_headers
    )
    new_code = regenerated.json()["access_code"]

    old = await api_client.post("/api/portal/login", json=_login())
    assert old.status_code == 401
    new = await api_client.post("/api/portal/login", json=_login(access_code=new_code))
    assert new.status_code == 200
