"""Policy instances: expiry arithmetic, association rules and expiry tracking."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from conftest import create_client, create_instance, create_template

from insurance_crm.core.errors import ValidationFailed
from insurance_crm.services.expiry import warning_level
from insurance_crm.services.policy_instances import add_months, calculate_expiry_date


class TestExpiryArithmetic:
    @pytest.mark.parametrize(
        ("start", "months", "expected"),
        [
            (date(2024, 1, 15), 12, date(2025, 1, 15)),
            (date(2024, 1, 31), 1, date(2024, 2, 29)),
            (date(2023, 1, 31), 1, date(2023, 2, 28)),
            (date(2024, 11, 30), 3, date(2025, 2, 28)),
            (date(2024, 2, 29), 12, date(2025, 2, 28)),
        ],
    )
    def test_add_months_clamps_to_month_end(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_zero_duration_rejected(self):
        with pytest.raises(ValidationFailed):
            calculate_expiry_date(date(2024, 1, 1), 0)

    @pytest.mark.parametrize(
        ("days", "level"),
        [(0, "critical"), (7, "critical"), (8, "warning"), (30, "warning"), (31, "info"), (60, "info"), (61, None)],
    )
    def test_warning_levels(self, days, level):
        assert warning_level(days) == level

    async def test_calculate_expiry_endpoint(self, client, auth_headers):
        response = await client.post(
            "/api/v1/policy-instances/calculate-expiry",
            json={"start_date": "2024-03-31", "duration_months": 6},
            headers=auth_headers,
        )
        assert response.json()["data"] == {"expiry_date": "2024-09-30"}


class TestAssociations:
    async def test_create_computes_expiry(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        template = await create_template(client, auth_headers)
        instance = await create_instance(
            client, auth_headers, holder["id"], template["id"], start_date="2024-01-31", duration_months=1
        )
        assert instance["expiry_date"] == "2024-02-29"
        assert instance["status"] == "Active"
        assert instance["client"]["id"] == holder["id"]
        assert instance["policy_template"]["policy_number"] == "LIC-001"

    async def test_same_template_twice_conflicts(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        template = await create_template(client, auth_headers)
        await create_instance(client, auth_headers, holder["id"], template["id"])

        check = await client.post(
            "/api/v1/policy-instances/validate-association",
            json={"policy_template_id": template["id"], "client_id": holder["id"]},
            headers=auth_headers,
        )
        assert check.json()["data"]["is_unique"] is False

        response = await client.post(
            f"/api/v1/clients/{holder['id']}/policy-instances",
            json={
                "policy_template_id": template["id"],
                "premium_amount": 5000,
                "start_date": "2024-06-01",
                "duration_months": 12,
            },
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Client already has this policy template"

    async def test_commission_above_premium(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        template = await create_template(client, auth_headers)
        response = await client.post(
            f"/api/v1/clients/{holder['id']}/policy-instances",
            json={
                "policy_template_id": template["id"],
                "premium_amount": 1000,
                "commission_amount": 1500,
                "start_date": "2024-06-01",
                "duration_months": 12,
            },
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "commission_amount"

    async def test_unknown_template(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        response = await client.post(
            f"/api/v1/clients/{holder['id']}/policy-instances",
            json={
                "policy_template_id": "00000000-0000-0000-0000-000000000000",
                "premium_amount": 1000,
                "start_date": "2024-06-01",
                "duration_months": 12,
            },
            headers=auth_headers,
        )
        assert response.status_code == 404


class TestInstanceUpdates:
    async def _instance(self, client, headers, **overrides):
        holder = await create_client(client, headers)
        template = await create_template(client, headers)
        return await create_instance(client, headers, holder["id"], template["id"], **overrides)

    async def test_duration_change_recomputes_expiry(self, client, auth_headers):
        instance = await self._instance(client, auth_headers, start_date="2024-01-15")
        response = await client.put(
            f"/api/v1/policy-instances/{instance['id']}",
            json={"duration_months": 24},
            headers=auth_headers,
        )
        assert response.json()["data"]["expiry_date"] == "2026-01-15"

    async def test_expiry_must_follow_start(self, client, auth_headers):
        instance = await self._instance(client, auth_headers, start_date="2024-01-15")
        response = await client.put(
            f"/api/v1/policy-instances/{instance['id']}",
            json={"expiry_date": "2024-01-15"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Expiry date must be after start date"

    async def test_status_patch(self, client, auth_headers):
        instance = await self._instance(client, auth_headers)
        response = await client.patch(
            f"/api/v1/policy-instances/{instance['id']}/status",
            json={"status": "Expired"},
            headers=auth_headers,
        )
        assert response.json()["data"]["status"] == "Expired"

        bad = await client.patch(
            f"/api/v1/policy-instances/{instance['id']}/status",
            json={"status": "Cancelled"},
            headers=auth_headers,
        )
        assert bad.status_code == 400

    async def test_delete(self, client, auth_headers):
        instance = await self._instance(client, auth_headers)
        response = await client.delete(f"/api/v1/policy-instances/{instance['id']}", headers=auth_headers)
        assert response.status_code == 200
        missing = await client.get(f"/api/v1/policy-instances/{instance['id']}", headers=auth_headers)
        assert missing.status_code == 404


class TestExpiryTracking:
    async def test_warnings_grouped_by_level(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        soon = await create_template(client, auth_headers)
        later = await create_template(client, auth_headers, policy_number="LIC-002")
        first = await create_instance(client, auth_headers, holder["id"], soon["id"])
        second = await create_instance(client, auth_headers, holder["id"], later["id"])
        for instance, days in ((first, 3), (second, 45)):
            await client.put(
                f"/api/v1/policy-instances/{instance['id']}",
                json={"expiry_date": (date.today() + timedelta(days=days)).isoformat()},
                headers=auth_headers,
            )

        response = await client.get("/api/v1/policy-templates/expiry/warnings", headers=auth_headers)
        data = response.json()["data"]
        assert data["counts"] == {"critical": 1, "warning": 0, "info": 1}
        assert data["critical"][0]["policy_instance_id"] == first["id"]

        scoped = await client.get(
            f"/api/v1/clients/{holder['id']}/expiry-warnings", params={"days_ahead": 7}, headers=auth_headers
        )
        assert [w["days_until_expiry"] for w in scoped.json()["data"]] == [3]

    async def test_grouped_total_matches_counts_beyond_info_window(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        soon = await create_template(client, auth_headers)
        distant = await create_template(client, auth_headers, policy_number="LIC-003")
        first = await create_instance(client, auth_headers, holder["id"], soon["id"])
        second = await create_instance(client, auth_headers, holder["id"], distant["id"])
        for instance, days in ((first, 3), (second, 200)):
            await client.put(
                f"/api/v1/policy-instances/{instance['id']}",
                json={"expiry_date": (date.today() + timedelta(days=days)).isoformat()},
                headers=auth_headers,
            )

        response = await client.get(
            "/api/v1/policy-templates/expiry/warnings", params={"days_ahead": 365}, headers=auth_headers
        )
        data = response.json()["data"]
        assert data["counts"] == {"critical": 1, "warning": 0, "info": 0}
        assert data["total"] == sum(data["counts"].values()) == 1

    async def test_update_expired(self, client, auth_headers):
        holder = await create_client(client, auth_headers)
        template = await create_template(client, auth_headers)
        start = date.today() - timedelta(days=400)
        instance = await create_instance(
            client, auth_headers, holder["id"], template["id"], start_date=start.isoformat()
        )

        response = await client.post("/api/v1/policy-templates/expiry/update-expired", headers=auth_headers)
        body = response.json()
        assert body["message"] == "Updated 1 expired policies"
        assert body["data"]["updated_policies"][0]["id"] == instance["id"]

        refreshed = await client.get(f"/api/v1/policy-instances/{instance['id']}", headers=auth_headers)
        assert refreshed.json()["data"]["status"] == "Expired"

        again = await client.post("/api/v1/policy-templates/expiry/update-expired", headers=auth_headers)
        assert again.json()["data"]["updated_count"] == 0
