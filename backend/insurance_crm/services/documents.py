"""Client documents and profile images stored in Cloudinary."""

from __future__ import annotations

from typing import Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.config import settings
from insurance_crm.core.constants import DocumentType
from insurance_crm.core.errors import NotFoundError, ValidationFailed
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.client import Client
from insurance_crm.db.models.client_document import ClientDocument
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import documents as document_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity
from insurance_crm.services.storage import (
    ALLOWED_MIME_TYPES,
    CloudinaryClient,
    build_folder,
    validate_file,
)

logger = get_logger(__name__)


def get_storage() -> CloudinaryClient:
    """Storage client factory, overridable as a FastAPI dependency."""
    return CloudinaryClient()


async def _client_or_404(db: AsyncSession, client_id: uuid.UUID) -> Client:
    client = await client_repository.get_client(db, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


async def get_document_or_404(db: AsyncSession, document_id: uuid.UUID) -> ClientDocument:
    document = await document_repository.get_document(db, document_id)
    if document is None:
        raise NotFoundError("Document not found")
    return document


async def upload_document(
    db: AsyncSession,
    storage: CloudinaryClient,
    client_id: uuid.UUID,
    *,
    filename: str,
    content_type: str,
    content: bytes,
    document_type: str,
) -> ClientDocument:
    client = await _client_or_404(db, client_id)
    validate_file(filename, content_type, len(content))

    uploaded = await storage.upload(
        content,
        filename=filename,
        content_type=content_type,
        folder=build_folder(str(client.id), document_type),
    )
    document = await document_repository.create_document(
        db,
        client_id=client.id,
        document_type=document_type,
        file_name=uploaded.public_id.rsplit("/", 1)[-1],
        original_name=filename,
        mime_type=content_type,
        file_size=uploaded.bytes,
        cloudinary_url=uploaded.secure_url,
        cloudinary_id=uploaded.public_id,
        resource_type=uploaded.resource_type,
    )
    await log_activity(
        db,
        ActivityAction.DOCUMENT_UPLOADED,
        f"Uploaded {document_type} document for {client.full_name}: {filename}",
    )
    return document


async def list_documents(db: AsyncSession, client_id: uuid.UUID) -> list[ClientDocument]:
    await _client_or_404(db, client_id)
    return await document_repository.list_client_documents(db, client_id)


async def delete_document(db: AsyncSession, storage: CloudinaryClient, document_id: uuid.UUID) -> None:
    """Destroy the stored asset first; the row is kept if that fails."""
    document = await get_document_or_404(db, document_id)
    await storage.destroy(document.cloudinary_id, resource_type=document.resource_type)
    name = document.original_name
    await document_repository.delete_document(db, document)
    await log_activity(db, ActivityAction.DOCUMENT_DELETED, f"Deleted document: {name}")


async def generate_document_url(
    db: AsyncSession,
    storage: CloudinaryClient,
    document_id: uuid.UUID,
    *,
    width: int | None = None,
    height: int | None = None,
    crop: str | None = None,
) -> dict[str, Any]:
    document = await get_document_or_404(db, document_id)
    url = storage.delivery_url(
        document.cloudinary_id,
        resource_type=document.resource_type,
        width=width,
        height=height,
        crop=crop or ("fill" if width or height else None),
    )
    return {"url": url, "document_id": document.id}


async def upload_profile_image(
    db: AsyncSession,
    storage: CloudinaryClient,
    client_id: uuid.UUID,
    *,
    filename: str,
    content_type: str,
    content: bytes,
) -> Client:
    client = await _client_or_404(db, client_id)
    if not content_type.startswith("image/"):
        raise ValidationFailed.for_field("file", "Profile image must be an image file")
    validate_file(filename, content_type, len(content))

    uploaded = await storage.upload(
        content,
        filename=filename,
        content_type=content_type,
        folder=build_folder(str(client.id), subfolder="profile-images"),
    )
    if client.profile_image_id:
        await storage.destroy(client.profile_image_id, resource_type="image")

    client.profile_image_url = uploaded.secure_url
    client.profile_image_id = uploaded.public_id
    await db.flush()
    logger.info("Profile image updated", client_id=str(client.id))
    return client


async def delete_profile_image(db: AsyncSession, storage: CloudinaryClient, client_id: uuid.UUID) -> Client:
    client = await _client_or_404(db, client_id)
    if not client.profile_image_id:
        raise NotFoundError("No profile image found")
    await storage.destroy(client.profile_image_id, resource_type="image")
    client.profile_image_url = None
    client.profile_image_id = None
    await db.flush()
    return client


def upload_config() -> dict[str, Any]:
    return {
        "max_file_size": settings.MAX_FILE_SIZE,
        "max_file_size_mb": settings.MAX_FILE_SIZE // (1024 * 1024),
        "allowed_file_types": settings.allowed_file_extensions,
        "allowed_mime_types": list(ALLOWED_MIME_TYPES),
        "document_types": [document_type.value for document_type in DocumentType],
    }
