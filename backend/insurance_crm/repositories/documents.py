"""
Client document repository.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.db.models.client_document import ClientDocument


async def create_document(
    db: AsyncSession,
    *,
    client_id: uuid.UUID,
    document_type: str,
    file_name: str,
    original_name: str,
    mime_type: str,
    file_size: int,
    cloudinary_url: str,
    cloudinary_id: str,
    resource_type: str = "raw",
) -> ClientDocument:
    document = ClientDocument(
        client_id=client_id,
        document_type=document_type,
        file_name=file_name,
        original_name=original_name,
        mime_type=mime_type,
        file_size=file_size,
        cloudinary_url=cloudinary_url,
        cloudinary_id=cloudinary_id,
        resource_type=resource_type,
    )
    db.add(document)
    await db.flush()
    return document


async def get_document(db: AsyncSession, document_id: uuid.UUID) -> ClientDocument | None:
    return await db.get(ClientDocument, document_id)


async def list_client_documents(db: AsyncSession, client_id: uuid.UUID) -> list[ClientDocument]:
    """A client's documents, most recent upload first."""
    stmt = (
        select(ClientDocument)
        .where(ClientDocument.client_id == client_id)
        .order_by(ClientDocument.uploaded_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def delete_document(db: AsyncSession, document: ClientDocument) -> None:
    await db.delete(document)
    await db.flush()
