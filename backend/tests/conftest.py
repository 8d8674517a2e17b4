"""Shared pytest fixtures: in-memory database, API client and an authenticated agent."""

from __future__ import annotations

import os

os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MSG91_AUTH_KEY"] = ""
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

from datetime import date
from typing import Any, AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from insurance_crm.api.deps import get_db
from insurance_crm.core.cache import cache
from insurance_crm.core.security import create_access_token
from insurance_crm.db.models import Base
from insurance_crm.db.session import build_engine
from insurance_crm.main import app
from insurance_crm.repositories import agent_settings as agent_repository
from insurance_crm.services import documents as document_service
from insurance_crm.services.storage import UploadResult

AGENT_EMAIL = "agent@example.com"
AGENT_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite engine with every table created."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    """Session for calling services and repositories directly."""
    async with session_factory() as session:
        yield session


class FakeStorage:
    """In-memory stand-in for the Cloudinary client."""

    def __init__(self) -> None:
        self.uploaded: list[dict[str, Any]] = []
        self.destroyed: list[str] = []

    async def upload(self, content: bytes, *, filename: str, content_type: str, folder: str) -> UploadResult:
        public_id = f"{folder}/{len(self.uploaded) + 1}_{filename.rsplit('.', 1)[0]}"
        self.uploaded.append({"public_id": public_id, "filename": filename, "folder": folder})
        return UploadResult(
            public_id=public_id,
            secure_url=f"https://res.cloudinary.com/demo/raw/upload/{public_id}",
            resource_type="image" if content_type.startswith("image/") else "raw",
            bytes=len(content),
        )

    async def destroy(self, public_id: str, *, resource_type: str = "image") -> None:
        self.destroyed.append(public_id)

    def delivery_url(self, public_id: str, **options: Any) -> str:
        parts = [f"{key}={value}" for key, value in sorted(options.items()) if value]
        return f"https://res.cloudinary.com/demo/{public_id}?{'&'.join(parts)}"


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
async def client(session_factory, storage) -> AsyncIterator[AsyncClient]:
    """API client bound to the test database and fake storage."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[document_service.get_storage] = lambda: storage
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
async def agent(session_factory):
    async with session_factory() as session:
        row = await agent_repository.upsert_agent(
            session, name="Test Agent", email=AGENT_EMAIL, password=AGENT_PASSWORD
        )
        await session.commit()
    return row


@pytest.fixture
def auth_headers(agent) -> dict[str, str]:
    token = create_access_token({"sub": str(agent.id), "email": agent.agent_email})
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def client_payload(**overrides: Any) -> dict[str, Any]:
    data = {
        "first_name": "Priya",
        "last_name": "Sharma",
        "date_of_birth": "1985-03-21",
        "phone_number": "9123456780",
        "whatsapp_number": "9123456780",
        "email": "priya@example.com",
    }
    data.update(overrides)
    return data


def lead_payload(**overrides: Any) -> dict[str, Any]:
    data = {
        "name": "Rahul Verma",
        "email": "rahul@example.com",
        "phone": "9876543210",
        "insurance_interest": "Life",
        "date_of_birth": "1990-05-14",
    }
    data.update(overrides)
    return data


def template_payload(**overrides: Any) -> dict[str, Any]:
    data = {"policy_number": "LIC-001", "policy_type": "Life", "provider": "LIC"}
    data.update(overrides)
    return data


def instance_payload(template_id: str, **overrides: Any) -> dict[str, Any]:
    data = {
        "policy_template_id": template_id,
        "premium_amount": 12000,
        "commission_amount": 1200,
        "start_date": date.today().isoformat(),
        "duration_months": 12,
    }
    data.update(overrides)
    return data


async def create_client(http: AsyncClient, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    response = await http.post("/api/v1/clients", json=client_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def create_template(http: AsyncClient, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    response = await http.post("/api/v1/policy-templates", json=template_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def create_instance(
    http: AsyncClient, headers: dict[str, str], client_id: str, template_id: str, **overrides: Any
) -> dict[str, Any]:
    response = await http.post(
        f"/api/v1/clients/{client_id}/policy-instances",
        json=instance_payload(template_id, **overrides),
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]
