"""Dashboard totals, chart data and health probes."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from conftest import create_client, create_instance, create_template, lead_payload

from insurance_crm.services.dashboard import month_bounds, percent_change


@pytest.mark.parametrize(
    ("current", "previous", "expected"),
    [(0, 0, 0), (5, 0, 100), (15, 10, 50), (5, 10, -50), (1, 3, -67)],
)
def test_percent_change(current, previous, expected):
    assert percent_change(current, previous) == expected


def test_month_bounds_in_january():
    now = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    current, previous = month_bounds(now)
    assert current == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert previous == datetime(2023, 12, 1, tzinfo=timezone.utc)


class TestDashboardEndpoints:
    async def test_stats(self, client, auth_headers):
        await client.post("/api/v1/leads", json=lead_payload())
        holder = await create_client(client, auth_headers)
        template = await create_template(client, auth_headers)
        await create_instance(client, auth_headers, holder["id"], template["id"])

        response = await client.get("/api/v1/dashboard/stats", headers=auth_headers)
        data = response.json()["data"]
        assert data["total_leads"] == 1
        assert data["total_clients"] == 1
        assert data["active_policies"] == 1
        assert data["commission_this_month"] == 1200
        assert data["clients_change"] == 100

    async def test_stats_refresh_after_writes(self, client, auth_headers):
        before = await client.get("/api/v1/dashboard/stats", headers=auth_headers)
        assert before.json()["data"]["total_clients"] == 0

        await create_client(client, auth_headers)
        after = await client.get("/api/v1/dashboard/stats", headers=auth_headers)
        assert after.json()["data"]["total_clients"] == 1

    async def test_chart_lists_every_status(self, client, auth_headers):
        await client.post("/api/v1/leads", json=lead_payload(status="Contacted"))
        response = await client.get("/api/v1/dashboard/chart-data", headers=auth_headers)
        counts = {row["status"]: row["count"] for row in response.json()["data"]}
        assert counts["Contacted"] == 1
        assert counts["New"] == 0
        assert len(counts) >= 5

    async def test_enhanced_stats(self, client, auth_headers):
        response = await client.get("/api/v1/dashboard/enhanced-stats", headers=auth_headers)
        data = response.json()["data"]
        assert set(data["expiry_warnings"]) == {"expiring_this_week", "expiring_this_month", "expired_last_month"}
        assert data["policy_template_stats"]["total_templates"] == 0

    async def test_activities_limit(self, client, auth_headers):
        for index in range(4):
            await client.post("/api/v1/leads", json=lead_payload(email=f"l{index}@example.com"))
        response = await client.get("/api/v1/dashboard/activities", params={"limit": 3}, headers=auth_headers)
        assert len(response.json()["data"]) == 3

        too_many = await client.get("/api/v1/dashboard/activities", params={"limit": 51}, headers=auth_headers)
        assert too_many.status_code == 400


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    async def test_ready_reports_agent(self, client, agent):
        response = await client.get("/ready")
        assert response.json() == {"status": "ready", "agent_configured": True}
