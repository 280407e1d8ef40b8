"""Tests for product catalog and review endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


def _review(overall: int, **fields) -> dict:
    return {
        "overall_rating": overall,
        "ease_of_use_rating": 4,
        "durability_rating": 3,
        "value_rating": 5,
        "safety_rating": 4,
        "title": f"{overall} stars",
        "review_text": "Used it for a month.",
        **fields,
    }


async def _create_product(api_client: AsyncClient, headers: dict[str, str], **fields) -> dict:
    payload = {"name": "Shower Chair", "category": "Bathroom Safety", **fields}
    response = await api_client.post("/api/products", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_categories(api_client: AsyncClient, staff_headers) -> None:
    response = await api_client.get("/api/products/categories", headers=staff_headers)
    assert response.status_code == 200
    assert "Mobility Aids" in response.json()


@pytest.mark.asyncio
async def test_create_product(api_client: AsyncClient, staff_headers) -> None:
    created = await _create_product(api_client, staff_headers, features=["Padded seat"])
    assert created["rating"] == 0.0
    assert created["review_count"] == 0
    assert created["features"] == ["Padded seat"]
    assert created["is_active"] is True

    invalid = await api_client.post(
        "/api/products",
        json={"name": "Jetpack", "category": "Flight"},
        headers=staff_headers,
    )
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_list_and_search(api_client: AsyncClient, staff_headers) -> None:
    await _create_product(api_client, staff_headers)
    await _create_product(
        api_client, staff_headers, name="Rollator", category="Mobility Aids", brand="Drive"
    )

    by_category = await api_client.get(
        "/api/products", params={"category": "Mobility Aids"}, headers=staff_headers
    )
    assert [item["name"] for item in by_category.json()["items"]] == ["Rollator"]

    by_brand = await api_client.get(
        "/api/products", params={"search": "drive"}, headers=staff_headers
    )
    assert by_brand.json()["total"] == 1


@pytest.mark.asyncio
async def test_update_product(api_client: AsyncClient, staff_headers) -> None:
    created = await _create_product(api_client, staff_headers)

    response = await api_client.patch(
        f"/api/products/{created['id']}",
        json={"price_range": "$40-$60", "medicare_covered": True},
        headers=staff_headers,
    )
    assert response.status_code == 200
    assert response.json()["price_range"] == "$40-$60"
    assert response.json()["medicare_covered"] is True


@pytest.mark.asyncio
async def test_soft_delete(api_client: AsyncClient, staff_headers) -> None:
    created = await _create_product(api_client, staff_headers)

    response = await api_client.delete(f"/api/products/{created['id']}", headers=staff_headers)
    assert response.status_code == 204

    missing = await api_client.get(f"/api/products/{created['id']}", headers=staff_headers)
    assert missing.status_code == 404
    listed = await api_client.get(
        "/api/products", params={"include_inactive": True}, headers=staff_headers
    )
    assert listed.json()["items"][0]["is_active"] is False


@pytest.mark.asyncio
async def test_reviews_update_rating(api_client: AsyncClient, staff_headers) -> None:
    product = await _create_product(api_client, staff_headers)
    url = f"/api/products/{product['id']}"

    first = await api_client.post(f"{url}/reviews", json=_review(5), headers=staff_headers)
    assert first.status_code == 201
    assert first.json()["user_name"] == "Casey Morgan"
    assert first.json()["user_role"] == "care_manager"
    await api_client.post(
        f"{url}/reviews",
        json=_review(2, user_name="Dana", user_role="family_member", would_recommend=False),
        headers=staff_headers,
    )
    await api_client.post(f"{url}/reviews", json=_review(4), headers=staff_headers)

    fetched = await api_client.get(url, headers=staff_headers)
    assert fetched.json()["review_count"] == 3
    assert fetched.json()["rating"] == 3.7

    summary = await api_client.get(f"{url}/rating-summary", headers=staff_headers)
    payload = summary.json()
    assert payload["total_reviews"] == 3
    assert payload["average_value"] == 5.0
    assert payload["would_recommend_percentage"] == 67
    assert payload["breakdown"] == {"1": 0, "2": 1, "3": 0, "4": 1, "5": 1}


@pytest.mark.asyncio
async def test_review_rating_bounds(api_client: AsyncClient, staff_headers) -> None:
    product = await _create_product(api_client, staff_headers)
    response = await api_client.post(
        f"/api/products/{product['id']}/reviews", json=_review(6), headers=staff_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_review_sorting_and_helpful_votes(api_client: AsyncClient, staff_headers) -> None:
    product = await _create_product(api_client, staff_headers)
    url = f"/api/products/{product['id']}/reviews"
    low = (await api_client.post(url, json=_review(1), headers=staff_headers)).json()
    high = (await api_client.post(url, json=_review(5), headers=staff_headers)).json()

    voted = await api_client.post(
        f"/api/products/reviews/{low['id']}/helpful", headers=staff_headers
    )
    assert voted.json()["helpful_votes"] == 1

    highest = await api_client.get(url, params={"sort": "highest"}, headers=staff_headers)
    assert [review["id"] for review in highest.json()] == [high["id"], low["id"]]
    helpful = await api_client.get(url, params={"sort": "helpful"}, headers=staff_headers)
    assert helpful.json()[0]["id"] == low["id"]

    invalid = await api_client.get(url, params={"sort": "random"}, headers=staff_headers)
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_admin_response(
    api_client: AsyncClient, staff_headers, admin_headers
) -> None:
    product = await _create_product(api_client, staff_headers)
    review = (
        await api_client.post(
            f"/api/products/{product['id']}/reviews", json=_review(3), headers=staff_headers
        )
    ).json()
    url = f"/api/products/reviews/{review['id']}/response"

    forbidden = await api_client.put(url, json={"response": "Thanks"}, headers=staff_headers)
    assert forbidden.status_code == 403

    answered = await api_client.put(
        url, json={"response": " Thanks for the detail. "}, headers=admin_headers
    )
    assert answered.status_code == 200
    payload = answered.json()
    assert payload["admin_response"] == "Thanks for the detail."
    assert payload["admin_response_by"] == "Avery Admin"
    assert payload["admin_response_at"] is not None

    missing = await api_client.put(
        "/api/products/reviews/999/response", json={"response": "Hi"}, headers=admin_headers
    )
    assert missing.status_code == 404
