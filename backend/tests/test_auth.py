"""Login, token verification and protected-route access."""

from __future__ import annotations

from conftest import AGENT_EMAIL, AGENT_PASSWORD

from insurance_crm.core.security import create_access_token, decode_access_token, hash_password, verify_password


class TestPasswordHashing:
    def test_round_trip(self):
        hashed = hash_password("s3cret-value")
        assert hashed != "s3cret-value"
        assert verify_password("s3cret-value", hashed)
        assert not verify_password("wrong", hashed)

    def test_empty_or_malformed_hash_never_matches(self):
        assert not verify_password("anything", "")
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestTokens:
    def test_decode_returns_claims(self):
        token = create_access_token({"sub": "abc"})
        payload = decode_access_token(token)
        assert payload["sub"] == "abc"
        assert "exp" in payload

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": "abc"}, expires_minutes=-1)
        assert decode_access_token(token) is None

    def test_tampered_token_is_rejected(self):
        token = create_access_token({"sub": "abc"})
        assert decode_access_token(token[:-2] + "xx") is None


class TestLogin:
    async def test_valid_credentials_issue_token(self, client, agent):
        response = await client.post(
            "/api/v1/auth/login", json={"email": AGENT_EMAIL.upper(), "password": AGENT_PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token"]
        assert body["data"]["user"]["email"] == AGENT_EMAIL
        assert decode_access_token(body["data"]["token"])["sub"] == str(agent.id)

    async def test_wrong_password(self, client, agent):
        response = await client.post("/api/v1/auth/login", json={"email": AGENT_EMAIL, "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials", "status_code": 401}

    async def test_unknown_email(self, client, agent):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "someone@example.com", "password": AGENT_PASSWORD}
        )
        assert response.status_code == 401

    async def test_malformed_body_is_a_validation_error(self, client):
        response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"email", "password"} <= fields


class TestProtectedRoutes:
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/clients")
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication credentials were not provided"

    async def test_invalid_token(self, client, agent):
        response = await client.get("/api/v1/clients", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    async def test_token_for_another_account(self, client, agent):
        token = create_access_token({"sub": "00000000-0000-0000-0000-000000000000"})
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_verify_and_me(self, client, auth_headers):
        verify = await client.get("/api/v1/auth/verify", headers=auth_headers)
        assert verify.status_code == 200
        assert verify.json()["data"]["valid"] is True

        me = await client.get("/api/v1/auth/me", headers=auth_headers)
        assert me.json()["data"]["name"] == "Test Agent"


class TestSettings:
    async def test_update_profile(self, client, auth_headers):
        response = await client.put(
            "/api/v1/settings",
            json={"agent_name": "Renamed", "agent_email": "New@Example.com"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["agent_email"] == "new@example.com"

    async def test_change_password(self, client, auth_headers):
        wrong = await client.put(
            "/api/v1/settings/password",
            json={"current_password": "bad", "new_password": "another-password"},
            headers=auth_headers,
        )
        assert wrong.status_code == 400
        assert wrong.json()["message"] == "Current password is incorrect"

        changed = await client.put(
            "/api/v1/settings/password",
            json={"current_password": AGENT_PASSWORD, "new_password": "another-password"},
            headers=auth_headers,
        )
        assert changed.status_code == 200

        login = await client.post(
            "/api/v1/auth/login", json={"email": AGENT_EMAIL, "password": "another-password"}
        )
        assert login.status_code == 200
