"""Lead capture, listing, updates and conversion to a client."""

from __future__ import annotations

from conftest import create_client, lead_payload

from insurance_crm.services.leads import split_name


async def _create_lead(client, **overrides):
    response = await client.post("/api/v1/leads", json=lead_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestSplitName:
    def test_first_and_rest(self):
        assert split_name("Anita Rao Kulkarni") == ("Anita", "Rao Kulkarni")

    def test_single_word_fills_both(self):
        assert split_name("Madonna") == ("Madonna", "Madonna")


class TestLeadCapture:
    async def test_create_is_public(self, client):
        lead = await _create_lead(client, email="Rahul@Example.com")
        assert lead["status"] == "New"
        assert lead["priority"] == "Warm"
        assert lead["email"] == "rahul@example.com"

    async def test_invalid_phone(self, client):
        response = await client.post("/api/v1/leads", json=lead_payload(phone="12345"))
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "phone"

    async def test_future_birth_date_rejected(self, client):
        response = await client.post("/api/v1/leads", json=lead_payload(date_of_birth="2999-01-01"))
        assert response.status_code == 400


class TestLeadListing:
    async def test_pagination_and_search(self, client, auth_headers):
        for index in range(3):
            await _create_lead(client, name=f"Kiran {index}", email=f"k{index}@example.com")
        await _create_lead(client, name="Meera Nair", email="meera@example.com")

        page = await client.get("/api/v1/leads", params={"page": 1, "limit": 2}, headers=auth_headers)
        data = page.json()["data"]
        assert len(data["leads"]) == 2
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 4, "total_pages": 2}

        found = await client.get("/api/v1/leads", params={"search": "meera"}, headers=auth_headers)
        assert [lead["name"] for lead in found.json()["data"]["leads"]] == ["Meera Nair"]

    async def test_status_filter(self, client, auth_headers):
        await _create_lead(client, status="Contacted")
        await _create_lead(client, name="Other", email="other@example.com")
        response = await client.get("/api/v1/leads", params={"status": "Contacted"}, headers=auth_headers)
        assert response.json()["data"]["pagination"]["total"] == 1

    async def test_limit_above_maximum(self, client, auth_headers):
        response = await client.get("/api/v1/leads", params={"limit": 500}, headers=auth_headers)
        assert response.status_code == 400


class TestLeadUpdates:
    async def test_partial_update_and_status_activity(self, client, auth_headers):
        lead = await _create_lead(client)
        response = await client.put(
            f"/api/v1/leads/{lead['id']}", json={"status": "Qualified"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Qualified"
        assert response.json()["data"]["name"] == "Rahul Verma"

        activities = await client.get("/api/v1/dashboard/activities", headers=auth_headers)
        descriptions = [item["description"] for item in activities.json()["data"]]
        assert "Updated lead status: Rahul Verma (New → Qualified)" in descriptions

    async def test_blank_required_field_is_ignored(self, client, auth_headers):
        lead = await _create_lead(client)
        response = await client.put(f"/api/v1/leads/{lead['id']}", json={"name": ""}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Rahul Verma"

    async def test_delete_then_404(self, client, auth_headers):
        lead = await _create_lead(client)
        deleted = await client.delete(f"/api/v1/leads/{lead['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        missing = await client.get(f"/api/v1/leads/{lead['id']}", headers=auth_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Lead not found"


class TestConversion:
    async def test_convert_creates_client_and_marks_won(self, client, auth_headers):
        lead = await _create_lead(client, name="Anita Rao", whatsapp_number=None)
        response = await client.post(f"/api/v1/leads/{lead['id']}/convert", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["lead"]["status"] == "Won"
        assert data["client"]["first_name"] == "Anita"
        assert data["client"]["last_name"] == "Rao"
        assert data["client"]["whatsapp_number"] == "9876543210"

        again = await client.post(f"/api/v1/leads/{lead['id']}/convert", headers=auth_headers)
        assert again.status_code == 400

    async def test_lead_without_birth_date(self, client, auth_headers):
        lead = await _create_lead(client, date_of_birth=None)
        response = await client.post(f"/api/v1/leads/{lead['id']}/convert", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "date_of_birth"

    async def test_email_already_a_client(self, client, auth_headers):
        await create_client(client, auth_headers, email="rahul@example.com")
        lead = await _create_lead(client)
        response = await client.post(f"/api/v1/leads/{lead['id']}/convert", headers=auth_headers)
        assert response.status_code == 409

        still_open = await client.get(f"/api/v1/leads/{lead['id']}", headers=auth_headers)
        assert still_open.json()["data"]["status"] == "New"
