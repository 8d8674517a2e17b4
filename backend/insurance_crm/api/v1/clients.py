"""
Client endpoints, including the per-client policy, expiry, document and
profile-image sub-resources.
"""

from __future__ import annotations

from typing import Any
import uuid

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import Pagination, get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.clients import ClientCreate, ClientListItem, ClientResponse, ClientUpdate
from insurance_crm.api.schemas.documents import DocumentResponse
from insurance_crm.api.schemas.policy_instances import (
    ClientPolicyInstance,
    PolicyInstanceCreate,
    PolicyInstanceResponse,
)
from insurance_crm.core.constants import INFO_DAYS, DocumentType
from insurance_crm.core.errors import ValidationFailed
from insurance_crm.repositories import clients as client_repository
from insurance_crm.services import clients as client_service
from insurance_crm.services import documents as document_service
from insurance_crm.services import expiry as expiry_service
from insurance_crm.services import policy_instances as instance_service
from insurance_crm.services.storage import CloudinaryClient

router = APIRouter(prefix="/clients", tags=["Clients"], dependencies=[Depends(get_current_agent)])


async def _read_upload(file: UploadFile | None) -> tuple[str, str, bytes]:
    if file is None or not file.filename:
        raise ValidationFailed.for_field("file", "No file uploaded")
    content = await file.read()
    return file.filename, file.content_type or "application/octet-stream", content


@router.get("")
async def list_clients(
    pagination: Pagination = Depends(),
    search: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows, total = await client_repository.list_clients(
        db,
        search=search,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    clients = [
        ClientListItem.model_validate(client).model_copy(update={"policy_count": count})
        for client, count in rows
    ]
    return ok({"clients": clients, "pagination": pagination.meta(total)})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientCreate, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    client = await client_service.create_client(db, payload.model_dump())
    return ok(ClientResponse.model_validate(client), "Client created successfully")


@router.get("/{client_id}")
async def get_client(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    client, stats = await client_service.get_client_detail(db, client_id)
    return ok(
        {
            "client": ClientResponse.model_validate(client),
            "policy_instances": [
                ClientPolicyInstance.model_validate(instance) for instance in client.policy_instances
            ],
            "stats": stats,
        }
    )


@router.put("/{client_id}")
async def update_client(
    client_id: uuid.UUID,
    payload: ClientUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    client = await client_service.update_client(db, client_id, payload.changes())
    return ok(ClientResponse.model_validate(client), "Client updated successfully")


@router.delete("/{client_id}")
async def delete_client(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await client_service.delete_client(db, client_id)
    return ok(result, "Client deleted successfully")


# ─── Policy instances ─────────────────────────
@router.get("/{client_id}/policy-instances")
async def list_client_policy_instances(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    instances = await instance_service.list_client_instances(db, client_id)
    return ok([PolicyInstanceResponse.model_validate(instance) for instance in instances])


@router.post("/{client_id}/policy-instances", status_code=status.HTTP_201_CREATED)
async def create_client_policy_instance(
    client_id: uuid.UUID,
    payload: PolicyInstanceCreate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    instance = await instance_service.create_instance(db, client_id, **payload.model_dump())
    return ok(PolicyInstanceResponse.model_validate(instance), "Policy instance created successfully")


@router.get("/{client_id}/expiry-warnings")
async def client_expiry_warnings(
    client_id: uuid.UUID,
    days_ahead: int = Query(INFO_DAYS, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await client_service.get_client_or_404(db, client_id)
    warnings = await expiry_service.get_expiry_warnings(db, days_ahead=days_ahead, client_id=client_id)
    return ok(warnings)


# ─── Documents ────────────────────────────────
@router.get("/{client_id}/documents")
async def list_client_documents(client_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    documents = await document_service.list_documents(db, client_id)
    return ok([DocumentResponse.model_validate(document) for document in documents])


@router.post("/{client_id}/documents", status_code=status.HTTP_201_CREATED)
async def upload_client_document(
    client_id: uuid.UUID,
    file: UploadFile | None = File(None),
    document_type: DocumentType = Form(...),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryClient = Depends(document_service.get_storage),
) -> dict[str, Any]:
    filename, content_type, content = await _read_upload(file)
    document = await document_service.upload_document(
        db,
        storage,
        client_id,
        filename=filename,
        content_type=content_type,
        content=content,
        document_type=document_type.value,
    )
    return ok(DocumentResponse.model_validate(document), "Document uploaded successfully")


# ─── Profile image ────────────────────────────
@router.post("/{client_id}/profile-image")
async def upload_profile_image(
    client_id: uuid.UUID,
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryClient = Depends(document_service.get_storage),
) -> dict[str, Any]:
    filename, content_type, content = await _read_upload(file)
    client = await document_service.upload_profile_image(
        db,
        storage,
        client_id,
        filename=filename,
        content_type=content_type,
        content=content,
    )
    return ok(
        {"profile_image_url": client.profile_image_url, "profile_image_id": client.profile_image_id},
        "Profile image uploaded successfully",
    )


@router.delete("/{client_id}/profile-image")
async def delete_profile_image(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryClient = Depends(document_service.get_storage),
) -> dict[str, Any]:
    await document_service.delete_profile_image(db, storage, client_id)
    return ok(None, "Profile image deleted successfully")
