"""Tests for the medication, diagnosis and care-plan template library API."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from src.library.csv_io import DIAGNOSIS_COLUMNS, MEDICATION_COLUMNS


async def _create_medication(
    api_client: AsyncClient, headers: dict[str, str], **fields
) -> dict:
    payload = {
        "name": "Lisinopril",
        "doses": ["10 mg", "20 mg"],
        "frequencies": ["Once daily"],
        **fields,
    }
    response = await api_client.post("/api/library/medications", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_diagnosis(
    api_client: AsyncClient, headers: dict[str, str], **fields
) -> dict:
    payload = {
        "code": "I10",
        "name": "Essential hypertension",
        "category": "Cardiovascular",
        **fields,
    }
    response = await api_client.post("/api/library/diagnoses", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestMedications:
    """Medication library endpoints."""

    @pytest.mark.asyncio
    async def test_create_get_update_delete(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        created = await _create_medication(
            api_client, admin_headers, doses=[" 10 mg ", "", "20 mg"], used_for="Blood pressure"
        )
        assert created["doses"] == ["10 mg", "20 mg"]
        assert created["is_active"] is True

        url = f"/api/library/medications/{created['id']}"
        fetched = await api_client.get(url, headers=staff_headers)
        assert fetched.status_code == 200
        assert fetched.json()["used_for"] == "Blood pressure"

        updated = await api_client.patch(
            url, json={"frequencies": ["Twice daily"], "is_active": False}, headers=admin_headers
        )
        assert updated.status_code == 200
        assert updated.json()["frequencies"] == ["Twice daily"]
        assert updated.json()["is_active"] is False

        deleted = await api_client.delete(url, headers=admin_headers)
        assert deleted.status_code == 204
        assert (await api_client.get(url, headers=staff_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_doses_and_frequencies_required(
        self, api_client: AsyncClient, admin_headers
    ) -> None:
        no_dose = await api_client.post(
            "/api/library/medications",
            json={"name": "Metformin", "doses": [" "], "frequencies": ["Daily"]},
            headers=admin_headers,
        )
        assert no_dose.status_code == 400
        assert no_dose.json()["detail"] == "At least one dose is required"

        no_frequency = await api_client.post(
            "/api/library/medications",
            json={"name": "Metformin", "doses": ["500 mg"], "frequencies": []},
            headers=admin_headers,
        )
        assert no_frequency.status_code == 400
        assert no_frequency.json()["detail"] == "At least one frequency is required"

    @pytest.mark.asyncio
    async def test_duplicate_name(self, api_client: AsyncClient, admin_headers) -> None:
        await _create_medication(api_client, admin_headers)
        other = await _create_medication(api_client, admin_headers, name="Metformin")

        response = await api_client.post(
            "/api/library/medications",
            json={"name": " LISINOPRIL ", "doses": ["5 mg"], "frequencies": ["Daily"]},
            headers=admin_headers,
        )
        assert response.status_code == 409

        renamed = await api_client.patch(
            f"/api/library/medications/{other['id']}",
            json={"name": "lisinopril"},
            headers=admin_headers,
        )
        assert renamed.status_code == 409

        cleared = await api_client.patch(
            f"/api/library/medications/{other['id']}", json={"name": None}, headers=admin_headers
        )
        assert cleared.status_code == 400

    @pytest.mark.asyncio
    async def test_staff_cannot_write(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        response = await api_client.post(
            "/api/library/medications",
            json={"name": "Metformin", "doses": ["500 mg"], "frequencies": ["Daily"]},
            headers=staff_headers,
        )
        assert response.status_code == 403

        created = await _create_medication(api_client, admin_headers)
        deleted = await api_client.delete(
            f"/api/library/medications/{created['id']}", headers=staff_headers
        )
        assert deleted.status_code == 403

    @pytest.mark.asyncio
    async def test_list_search_and_inactive(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        await _create_medication(api_client, admin_headers, used_for="Blood pressure")
        await _create_medication(api_client, admin_headers, name="Metformin", used_for="Diabetes")
        hidden = await _create_medication(api_client, admin_headers, name="Aspirin")
        await api_client.patch(
            f"/api/library/medications/{hidden['id']}",
            json={"is_active": False},
            headers=admin_headers,
        )

        listed = await api_client.get("/api/library/medications", headers=staff_headers)
        assert [item["name"] for item in listed.json()["items"]] == ["Lisinopril", "Metformin"]
        assert listed.json()["total"] == 2

        searched = await api_client.get(
            "/api/library/medications", params={"search": "DIAB"}, headers=staff_headers
        )
        assert [item["name"] for item in searched.json()["items"]] == ["Metformin"]

        everything = await api_client.get(
            "/api/library/medications",
            params={"include_inactive": "true", "limit": 1, "offset": 0},
            headers=staff_headers,
        )
        assert everything.json()["total"] == 3
        assert [item["name"] for item in everything.json()["items"]] == ["Aspirin"]

    @pytest.mark.asyncio
    async def test_import_skips_existing(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        await _create_medication(api_client, admin_headers)
        content = (
            b"name,doses,frequencies\n"
            b"lisinopril,5 mg,Daily\n"
            b"Metformin,500 mg; 850 mg,Twice daily\n"
            b",,\n"
        )

        response = await api_client.post(
            "/api/library/medications/import",
            files={"file": ("m.csv", content, "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json() == {
            "success": 1,
            "failed": 1,
            "errors": ["Row 2: lisinopril already exists"],
        }

        searched = await api_client.get(
            "/api/library/medications", params={"search": "metformin"}, headers=staff_headers
        )
        assert searched.json()["items"][0]["doses"] == ["500 mg", "850 mg"]

        forbidden = await api_client.post(
            "/api/library/medications/import",
            files={"file": ("m.csv", content, "text/csv")},
            headers=staff_headers,
        )
        assert forbidden.status_code == 403

    @pytest.mark.asyncio
    async def test_import_rejects_empty_and_non_utf8(
        self, api_client: AsyncClient, admin_headers
    ) -> None:
        empty = await api_client.post(
            "/api/library/medications/import",
            files={"file": ("m.csv", b"\n", "text/csv")},
            headers=admin_headers,
        )
        assert empty.status_code == 400

        latin = await api_client.post(
            "/api/library/medications/import",
            files={"file": ("m.csv", "Café".encode("latin-1"), "text/csv")},
            headers=admin_headers,
        )
        assert latin.status_code == 400

    @pytest.mark.asyncio
    async def test_template_and_export(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        template = await api_client.get(
            "/api/library/medications/template", headers=staff_headers
        )
        assert template.status_code == 200
        assert template.headers["content-type"].startswith("text/csv")
        assert template.text.splitlines()[0] == ",".join(MEDICATION_COLUMNS)

        await _create_medication(api_client, admin_headers)
        exported = await api_client.get("/api/library/medications/export", headers=staff_headers)
        assert exported.status_code == 200
        assert "attachment" in exported.headers["content-disposition"]
        assert exported.text.splitlines()[1].startswith("Lisinopril,10 mg; 20 mg,Once daily")


class TestDiagnoses:
    """Diagnosis library endpoints."""

    @pytest.mark.asyncio
    async def test_create_with_canonical_category(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        created = await _create_diagnosis(
            api_client, admin_headers, category="cardiovascular", common_symptoms=["Headache", " "]
        )
        assert created["category"] == "Cardiovascular"
        assert created["common_symptoms"] == ["Headache"]
        assert created["risk_factors"] == []

        fetched = await api_client.get(
            f"/api/library/diagnoses/{created['id']}", headers=staff_headers
        )
        assert fetched.json()["code"] == "I10"

    @pytest.mark.asyncio
    async def test_invalid_category_and_duplicate_code(
        self, api_client: AsyncClient, admin_headers
    ) -> None:
        invalid = await api_client.post(
            "/api/library/diagnoses",
            json={"code": "J45", "name": "Asthma", "category": "Lungs"},
            headers=admin_headers,
        )
        assert invalid.status_code == 400
        assert invalid.json()["detail"] == "Invalid category: Lungs"

        created = await _create_diagnosis(api_client, admin_headers)
        duplicate = await api_client.post(
            "/api/library/diagnoses",
            json={"code": "i10", "name": "Hypertension", "category": "Cardiovascular"},
            headers=admin_headers,
        )
        assert duplicate.status_code == 409

        recategorized = await api_client.patch(
            f"/api/library/diagnoses/{created['id']}",
            json={"category": "Nowhere"},
            headers=admin_headers,
        )
        assert recategorized.status_code == 400

    @pytest.mark.asyncio
    async def test_categories_count_active(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        await _create_diagnosis(api_client, admin_headers)
        await _create_diagnosis(api_client, admin_headers, code="I50", name="Heart failure")
        asthma = await _create_diagnosis(
            api_client, admin_headers, code="J45", name="Asthma", category="Respiratory"
        )
        await api_client.patch(
            f"/api/library/diagnoses/{asthma['id']}",
            json={"is_active": False},
            headers=admin_headers,
        )

        response = await api_client.get("/api/library/diagnoses/categories", headers=staff_headers)
        counts = {item["category"]: item["count"] for item in response.json()}
        assert len(counts) == 11
        assert counts["Cardiovascular"] == 2
        assert counts["Respiratory"] == 0

        listed = await api_client.get(
            "/api/library/diagnoses",
            params={"category": "Cardiovascular", "search": "heart"},
            headers=staff_headers,
        )
        assert [item["code"] for item in listed.json()["items"]] == ["I50"]

    @pytest.mark.asyncio
    async def test_import_and_export(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        content = (
            b"Code,Name,Category,Risk Factors\n"
            b"I10,Hypertension,Cardiovascular,Age; Obesity\n"
            b"J45,Asthma,Lungs,\n"
        )
        response = await api_client.post(
            "/api/library/diagnoses/import",
            files={"file": ("d.csv", content, "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["success"] == 1
        assert response.json()["errors"] == ["Row 3: Invalid category: Lungs"]

        exported = await api_client.get("/api/library/diagnoses/export", headers=staff_headers)
        lines = exported.text.splitlines()
        assert lines[0] == ",".join(DIAGNOSIS_COLUMNS)
        assert lines[1] == "I10,Hypertension,Cardiovascular,,,Age; Obesity"

    @pytest.mark.asyncio
    async def test_import_missing_columns(self, api_client: AsyncClient, admin_headers) -> None:
        response = await api_client.post(
            "/api/library/diagnoses/import",
            files={"file": ("d.csv", b"code,name\nI10,Hypertension\n", "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required columns: category"

    @pytest.mark.asyncio
    async def test_delete(self, api_client: AsyncClient, admin_headers, staff_headers) -> None:
        created = await _create_diagnosis(api_client, admin_headers)
        url = f"/api/library/diagnoses/{created['id']}"

        assert (await api_client.delete(url, headers=staff_headers)).status_code == 403
        assert (await api_client.delete(url, headers=admin_headers)).status_code == 204
        assert (await api_client.get(url, headers=staff_headers)).status_code == 404


class TestCarePlanTemplates:
    """Care-plan template endpoints."""

    @pytest.mark.asyncio
    async def test_categories(self, api_client: AsyncClient, staff_headers) -> None:
        response = await api_client.get(
            "/api/library/care-plans/categories", headers=staff_headers
        )
        assert response.status_code == 200
        assert len(response.json()) == 16
        assert "Fall Risk" in response.json()["Safety"]

    @pytest.mark.asyncio
    async def test_create_update_delete(
        self, api_client: AsyncClient, admin_headers, staff_headers
    ) -> None:
        response = await api_client.post(
            "/api/library/care-plans",
            json={
                "category": "Nutrition",
                "concern": "Poor Appetite",
                "goal": "Maintain weight",
                "barrier": "Lives alone",
                "target_date": "2026-11-30",
                "recommendations": [
                    {"text": "Arrange meal delivery", "priority": "high"},
                    {"text": "Weekly weigh-in"},
                ],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        created = response.json()
        assert created["target_date"] == "2026-11-30"
        assert [item["priority"] for item in created["recommendations"]] == ["high", "medium"]
        assert all(item["id"] for item in created["recommendations"])

        url = f"/api/library/care-plans/{created['id']}"
        ongoing = await api_client.patch(url, json={"is_ongoing": True}, headers=admin_headers)
        assert ongoing.status_code == 200
        assert ongoing.json()["target_date"] is None

        kept_id = created["recommendations"][0]["id"]
        trimmed = await api_client.patch(
            url,
            json={"recommendations": [{"id": kept_id, "text": "Arrange meal delivery"}]},
            headers=admin_headers,
        )
        assert trimmed.json()["recommendations"] == [
            {"id": kept_id, "text": "Arrange meal delivery", "priority": "medium"}
        ]

        listed = await api_client.get(
            "/api/library/care-plans",
            params={"category": "Nutrition", "search": "appetite"},
            headers=staff_headers,
        )
        assert [item["id"] for item in listed.json()] == [created["id"]]

        assert (await api_client.delete(url, headers=admin_headers)).status_code == 204
        missing = await api_client.get(url, headers=staff_headers)
        assert missing.status_code == 404
        assert missing.json()["detail"] == "Care plan template not found"

    @pytest.mark.asyncio
    async def test_invalid_category(self, api_client: AsyncClient, admin_headers) -> None:
        response = await api_client.post(
            "/api/library/care-plans",
            json={"category": "Gardening", "concern": "Weeds", "goal": "Tidy", "barrier": "Time"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_staff_cannot_create(self, api_client: AsyncClient, staff_headers) -> None:
        response = await api_client.post(
            "/api/library/care-plans",
            json={
                "category": "Safety",
                "concern": "Fall Risk",
                "goal": "No falls",
                "barrier": "Rugs",
            },
            headers=staff_headers,
        )
        assert response.status_code == 403
