"""Document lookup, deletion and delivery URLs, plus upload configuration."""

from __future__ import annotations

from typing import Any
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.documents import DocumentResponse, UrlRequest
from insurance_crm.services import documents as document_service
from insurance_crm.services.storage import CloudinaryClient

router = APIRouter(tags=["Documents"], dependencies=[Depends(get_current_agent)])


@router.get("/documents/{document_id}")
async def get_document(document_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    document = await document_service.get_document_or_404(db, document_id)
    return ok(DocumentResponse.model_validate(document))


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryClient = Depends(document_service.get_storage),
) -> dict[str, Any]:
    await document_service.delete_document(db, storage, document_id)
    return ok(None, "Document deleted successfully")


@router.post("/documents/{document_id}/generate-url")
async def generate_document_url(
    document_id: uuid.UUID,
    payload: UrlRequest | None = None,
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryClient = Depends(document_service.get_storage),
) -> dict[str, Any]:
    options = payload.model_dump() if payload else {}
    result = await document_service.generate_document_url(db, storage, document_id, **options)
    return ok(result)


@router.get("/uploads/config")
async def upload_config() -> dict[str, Any]:
    return ok(document_service.upload_config())
