"""Policy template catalogue: CRUD, filters, search and statistics."""

from __future__ import annotations

from conftest import create_client, create_instance, create_template

from insurance_crm.repositories.policy_templates import TemplateFilters


async def _catalogue(client, headers):
    lic = await create_template(client, headers)
    hdfc = await create_template(
        client, headers, policy_number="HDFC-H-7", policy_type="Health", provider="HDFC Ergo"
    )
    tata = await create_template(
        client, headers, policy_number="TATA-M-1", policy_type="Auto", provider="Tata AIG"
    )
    return lic, hdfc, tata


class TestTemplateFilters:
    def test_no_filters_no_conditions(self):
        assert TemplateFilters().conditions() == []

    def test_cache_identity_ignores_order(self):
        a = TemplateFilters(providers=["LIC", "HDFC"])
        b = TemplateFilters(providers=["HDFC", "LIC"])
        assert a.as_dict() == b.as_dict()


class TestTemplateCrud:
    async def test_duplicate_policy_number(self, client, auth_headers):
        await create_template(client, auth_headers)
        response = await client.post(
            "/api/v1/policy-templates",
            json={"policy_number": "LIC-001", "policy_type": "Health", "provider": "Other"},
            headers=auth_headers,
        )
        assert response.status_code == 409

    async def test_invalid_policy_number_characters(self, client, auth_headers):
        response = await client.post(
            "/api/v1/policy-templates",
            json={"policy_number": "LIC 001!", "policy_type": "Life", "provider": "LIC"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    async def test_rename_to_taken_number(self, client, auth_headers):
        _, hdfc, _ = await _catalogue(client, auth_headers)
        response = await client.put(
            f"/api/v1/policy-templates/{hdfc['id']}",
            json={"policy_number": "LIC-001"},
            headers=auth_headers,
        )
        assert response.status_code == 409

    async def test_delete_reports_impact(self, client, auth_headers):
        template = await create_template(client, auth_headers)
        first = await create_client(client, auth_headers)
        second = await create_client(client, auth_headers, email="second@example.com")
        await create_instance(client, auth_headers, first["id"], template["id"])
        await create_instance(client, auth_headers, second["id"], template["id"])

        response = await client.delete(f"/api/v1/policy-templates/{template['id']}", headers=auth_headers)
        assert response.json()["data"] == {"deleted_instances": 2, "affected_clients": 2}

        detail = await client.get(f"/api/v1/clients/{first['id']}", headers=auth_headers)
        assert detail.json()["data"]["policy_instances"] == []


class TestListing:
    async def test_filters_and_counts(self, client, auth_headers):
        lic, hdfc, _ = await _catalogue(client, auth_headers)
        holder = await create_client(client, auth_headers)
        await create_instance(client, auth_headers, holder["id"], lic["id"])

        response = await client.get(
            "/api/v1/policy-templates",
            params={"providers": "LIC,HDFC Ergo"},
            headers=auth_headers,
        )
        data = response.json()["data"]
        assert [t["policy_number"] for t in data["templates"]] == ["HDFC-H-7", "LIC-001"]
        counts = {t["policy_number"]: t["instance_count"] for t in data["templates"]}
        assert counts == {"HDFC-H-7": 0, "LIC-001": 1}
        assert data["stats"]["total_templates"] == 2

        with_instances = await client.get(
            "/api/v1/policy-templates", params={"has_instances": "true"}, headers=auth_headers
        )
        assert [t["id"] for t in with_instances.json()["data"]["templates"]] == [lic["id"]]

    async def test_listing_reflects_new_templates(self, client, auth_headers):
        await create_template(client, auth_headers)
        first = await client.get("/api/v1/policy-templates", headers=auth_headers)
        assert first.json()["data"]["pagination"]["total"] == 1

        await create_template(client, auth_headers, policy_number="LIC-002")
        second = await client.get("/api/v1/policy-templates", headers=auth_headers)
        assert second.json()["data"]["pagination"]["total"] == 2

    async def test_filter_options(self, client, auth_headers):
        await _catalogue(client, auth_headers)
        response = await client.get("/api/v1/policy-templates/filters", headers=auth_headers)
        assert response.json()["data"] == {
            "providers": ["HDFC Ergo", "LIC", "Tata AIG"],
            "policy_types": ["Auto", "Health", "Life"],
        }

    async def test_search_excludes_held_templates(self, client, auth_headers):
        lic, _, _ = await _catalogue(client, auth_headers)
        holder = await create_client(client, auth_headers)
        await create_instance(client, auth_headers, holder["id"], lic["id"])

        everything = await client.get(
            "/api/v1/policy-templates/search", params={"q": "l"}, headers=auth_headers
        )
        assert "LIC-001" in [t["policy_number"] for t in everything.json()["data"]]

        excluded = await client.get(
            "/api/v1/policy-templates/search",
            params={"q": "l", "exclude_client_id": holder["id"]},
            headers=auth_headers,
        )
        assert "LIC-001" not in [t["policy_number"] for t in excluded.json()["data"]]


class TestTemplateViews:
    async def test_clients_and_detail_stats(self, client, auth_headers):
        template = await create_template(client, auth_headers)
        holder = await create_client(client, auth_headers)
        await create_instance(client, auth_headers, holder["id"], template["id"])

        response = await client.get(f"/api/v1/policy-templates/{template['id']}/clients", headers=auth_headers)
        data = response.json()["data"]
        assert data["instances"][0]["client"]["first_name"] == "Priya"
        assert data["stats"]["total_clients"] == 1
        assert data["stats"]["active_instances"] == 1
        assert data["stats"]["average_premium"] == 12000

    async def test_system_stats(self, client, auth_headers):
        await _catalogue(client, auth_headers)
        response = await client.get("/api/v1/dashboard/policy-template-stats", headers=auth_headers)
        data = response.json()["data"]
        assert data["overview"]["total_templates"] == 3
        assert {row["type"] for row in data["overview"]["policy_type_distribution"]} == {"Life", "Health", "Auto"}
