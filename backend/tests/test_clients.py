"""Client CRUD, detail stats, documents and profile images."""

from __future__ import annotations

import cloudinary.exceptions
import cloudinary.uploader
from conftest import create_client, create_instance, create_template
import pytest

from insurance_crm.core.errors import ExternalServiceError
from insurance_crm.services.storage import CloudinaryClient


class TestClientCrud:
    async def test_create_normalises_identifiers(self, client, auth_headers):
        created = await create_client(
            client,
            auth_headers,
            email="Priya@Example.com",
            pan_number="abcde1234f",
            relationship="SPOUSE",
        )
        assert created["email"] == "priya@example.com"
        assert created["pan_number"] == "ABCDE1234F"

    async def test_missing_required_fields(self, client, auth_headers):
        response = await client.post("/api/v1/clients", json={"first_name": "Only"}, headers=auth_headers)
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"last_name", "date_of_birth", "phone_number", "whatsapp_number"} <= fields

    async def test_duplicate_email_conflicts(self, client, auth_headers):
        await create_client(client, auth_headers)
        response = await client.post(
            "/api/v1/clients",
            json={
                "first_name": "Another",
                "last_name": "Person",
                "date_of_birth": "1970-01-01",
                "phone_number": "9000000001",
                "whatsapp_number": "9000000001",
                "email": "PRIYA@example.com",
            },
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["message"] == "A client with this email already exists"

    async def test_update_keeps_own_email(self, client, auth_headers):
        created = await create_client(client, auth_headers)
        response = await client.put(
            f"/api/v1/clients/{created['id']}",
            json={"email": "priya@example.com", "city": "Pune"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["city"] == "Pune"

    async def test_list_search_and_policy_count(self, client, auth_headers):
        priya = await create_client(client, auth_headers)
        await create_client(
            client, auth_headers, first_name="Arjun", last_name="Mehta", email="arjun@example.com"
        )
        template = await create_template(client, auth_headers)
        await create_instance(client, auth_headers, priya["id"], template["id"])

        response = await client.get("/api/v1/clients", params={"search": "priya sh"}, headers=auth_headers)
        data = response.json()["data"]
        assert data["pagination"]["total"] == 1
        assert data["clients"][0]["policy_count"] == 1

    async def test_unknown_client(self, client, auth_headers):
        response = await client.get(
            "/api/v1/clients/00000000-0000-0000-0000-000000000000", headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Client not found"


class TestClientDetail:
    async def test_detail_includes_instances_and_stats(self, client, auth_headers):
        created = await create_client(client, auth_headers)
        life = await create_template(client, auth_headers)
        health = await create_template(
            client, auth_headers, policy_number="HDFC-9", policy_type="Health", provider="HDFC"
        )
        await create_instance(client, auth_headers, created["id"], life["id"])
        await create_instance(
            client,
            auth_headers,
            created["id"],
            health["id"],
            premium_amount=8000,
            commission_amount=800,
        )

        response = await client.get(f"/api/v1/clients/{created['id']}", headers=auth_headers)
        data = response.json()["data"]
        assert len(data["policy_instances"]) == 2
        assert {i["policy_template"]["policy_number"] for i in data["policy_instances"]} == {"LIC-001", "HDFC-9"}
        assert data["stats"] == {
            "total_policies": 2,
            "active_policies": 2,
            "total_premium": 20000,
            "total_commission": 2000,
        }

    async def test_delete_reports_removed_policies(self, client, auth_headers):
        created = await create_client(client, auth_headers)
        template = await create_template(client, auth_headers)
        instance = await create_instance(client, auth_headers, created["id"], template["id"])

        response = await client.delete(f"/api/v1/clients/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"deleted_policies": 1}

        gone = await client.get(f"/api/v1/policy-instances/{instance['id']}", headers=auth_headers)
        assert gone.status_code == 404

        activities = await client.get("/api/v1/dashboard/activities", headers=auth_headers)
        descriptions = [item["description"] for item in activities.json()["data"]]
        assert "Deleted client: Priya Sharma (1 policies removed)" in descriptions


class TestDocuments:
    async def test_upload_list_and_delete(self, client, auth_headers, storage):
        created = await create_client(client, auth_headers)
        upload = await client.post(
            f"/api/v1/clients/{created['id']}/documents",
            files={"file": ("pan-card.pdf", b"%PDF-1.4 test", "application/pdf")},
            data={"document_type": "IDENTITY_PROOF"},
            headers=auth_headers,
        )
        assert upload.status_code == 201, upload.text
        document = upload.json()["data"]
        assert document["original_name"] == "pan-card.pdf"
        assert document["document_type"] == "IDENTITY_PROOF"
        assert storage.uploaded[0]["folder"].endswith(f"{created['id']}/IDENTITY_PROOF")

        listed = await client.get(f"/api/v1/clients/{created['id']}/documents", headers=auth_headers)
        assert [d["id"] for d in listed.json()["data"]] == [document["id"]]

        url = await client.post(
            f"/api/v1/documents/{document['id']}/generate-url",
            json={"width": 200},
            headers=auth_headers,
        )
        assert "width=200" in url.json()["data"]["url"]

        deleted = await client.delete(f"/api/v1/documents/{document['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        assert storage.destroyed == [document["cloudinary_id"]]

    async def test_missing_file(self, client, auth_headers):
        created = await create_client(client, auth_headers)
        response = await client.post(
            f"/api/v1/clients/{created['id']}/documents",
            data={"document_type": "OTHER"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No file uploaded"

    async def test_disallowed_extension(self, client, auth_headers, storage):
        created = await create_client(client, auth_headers)
        response = await client.post(
            f"/api/v1/clients/{created['id']}/documents",
            files={"file": ("script.exe", b"MZ", "application/octet-stream")},
            data={"document_type": "OTHER"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert storage.uploaded == []

    async def test_upload_config(self, client, auth_headers):
        response = await client.get("/api/v1/uploads/config", headers=auth_headers)
        data = response.json()["data"]
        assert data["max_file_size_mb"] == 10
        assert "pdf" in data["allowed_file_types"]


class TestProfileImage:
    async def test_replace_destroys_previous_image(self, client, auth_headers, storage):
        created = await create_client(client, auth_headers)
        url = f"/api/v1/clients/{created['id']}/profile-image"

        first = await client.post(url, files={"file": ("a.png", b"png", "image/png")}, headers=auth_headers)
        first_id = first.json()["data"]["profile_image_id"]
        second = await client.post(url, files={"file": ("b.png", b"png", "image/png")}, headers=auth_headers)
        assert second.status_code == 200
        assert storage.destroyed == [first_id]

        removed = await client.delete(url, headers=auth_headers)
        assert removed.status_code == 200
        again = await client.delete(url, headers=auth_headers)
        assert again.status_code == 404

    async def test_non_image_rejected(self, client, auth_headers):
        created = await create_client(client, auth_headers)
        response = await client.post(
            f"/api/v1/clients/{created['id']}/profile-image",
            files={"file": ("cv.pdf", b"%PDF", "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Profile image must be an image file"


class TestCloudinaryClient:
    @pytest.fixture
    def storage_client(self) -> CloudinaryClient:
        return CloudinaryClient(cloud_name="demo", api_key="key", api_secret="secret")

    async def test_upload_passes_credentials_and_folder(self, storage_client, monkeypatch):
        calls = []

        def fake_upload(file, **options):
            calls.append((file.read(), options))
            return {
                "public_id": f"{options['folder']}/{options['public_id']}",
                "secure_url": "https://res.cloudinary.com/demo/raw/upload/v1/doc",
                "resource_type": "raw",
                "bytes": 13,
                "format": "pdf",
            }

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
        result = await storage_client.upload(
            b"%PDF-1.4 test", filename="pan.pdf", content_type="application/pdf", folder="docs/1/IDENTITY_PROOF"
        )

        content, options = calls[0]
        assert content == b"%PDF-1.4 test"
        assert options["cloud_name"] == "demo"
        assert options["api_key"] == "key"
        assert options["api_secret"] == "secret"
        assert options["resource_type"] == "raw"
        assert options["overwrite"] is False
        assert result.public_id.startswith("docs/1/IDENTITY_PROOF/")
        assert result.bytes == 13

    async def test_sdk_errors_become_bad_gateway(self, storage_client, monkeypatch):
        def failing_upload(file, **options):
            raise cloudinary.exceptions.Error("Invalid Signature")

        monkeypatch.setattr(cloudinary.uploader, "upload", failing_upload)
        with pytest.raises(ExternalServiceError) as excinfo:
            await storage_client.upload(b"png", filename="a.png", content_type="image/png", folder="docs")
        assert excinfo.value.status_code == 502
        assert "Invalid Signature" in excinfo.value.message

    async def test_unconfigured_client_makes_no_call(self, monkeypatch):
        def unexpected(*args, **options):
            raise AssertionError("no SDK call expected")

        monkeypatch.setattr(cloudinary.uploader, "destroy", unexpected)
        with pytest.raises(ExternalServiceError) as excinfo:
            await CloudinaryClient(cloud_name="", api_key="", api_secret="").destroy("docs/a")
        assert excinfo.value.message == "Cloudinary is not configured"

    @pytest.mark.parametrize("outcome, raises", [("ok", False), ("not found", False), ("error", True)])
    async def test_destroy_outcomes(self, storage_client, monkeypatch, outcome, raises):
        monkeypatch.setattr(cloudinary.uploader, "destroy", lambda public_id, **options: {"result": outcome})
        if raises:
            with pytest.raises(ExternalServiceError):
                await storage_client.destroy("docs/a", resource_type="raw")
        else:
            await storage_client.destroy("docs/a", resource_type="raw")

    def test_delivery_url_transformations(self, storage_client):
        url = storage_client.delivery_url("docs/a", width=200, crop="fill")
        assert url.startswith("https://res.cloudinary.com/demo/image/upload/")
        assert "c_fill,w_200" in url
        assert url.endswith("/docs/a")
