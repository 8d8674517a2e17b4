"""
Cloudinary storage through the official SDK.

The SDK is blocking, so uploads and destroys run in a worker thread.
Credentials are passed per call rather than through the SDK's global
``cloudinary.config()``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import io
import secrets
import time
from typing import Any

import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils

from insurance_crm.core.config import settings
from insurance_crm.core.errors import ExternalServiceError, ValidationFailed
from insurance_crm.core.logging import get_logger

logger = get_logger(__name__)

ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)


@dataclass
class UploadResult:
    public_id: str
    secure_url: str
    resource_type: str
    bytes: int
    format: str | None = None


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def validate_file(filename: str, content_type: str, size: int) -> None:
    """Reject files that are too large, or of a disallowed extension or MIME type."""
    if size > settings.MAX_FILE_SIZE:
        limit_mb = settings.MAX_FILE_SIZE // (1024 * 1024)
        raise ValidationFailed.for_field("file", f"File size exceeds maximum allowed size of {limit_mb}MB")
    allowed = settings.allowed_file_extensions
    if file_extension(filename) not in allowed:
        raise ValidationFailed.for_field(
            "file", f"File type not allowed. Allowed types: {', '.join(allowed)}"
        )
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationFailed.for_field("file", "Invalid file type detected")


def resource_type_for(content_type: str) -> str:
    return "image" if content_type.startswith("image/") else "raw"


def build_folder(client_id: str | None = None, document_type: str | None = None, subfolder: str | None = None) -> str:
    folder = settings.CLOUDINARY_FOLDER
    if client_id:
        folder += f"/{client_id}"
        if document_type:
            folder += f"/{document_type}"
    if subfolder:
        folder += f"/{subfolder}"
    return folder


class CloudinaryClient:
    """Async facade over ``cloudinary.uploader`` and ``cloudinary.utils``."""

    def __init__(
        self,
        *,
        cloud_name: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.cloud_name = cloud_name if cloud_name is not None else settings.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key if api_key is not None else settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret if api_secret is not None else settings.CLOUDINARY_API_SECRET
        self.timeout = timeout

    def configuration_errors(self) -> list[str]:
        errors = []
        if not self.cloud_name:
            errors.append("CLOUDINARY_CLOUD_NAME is required")
        if not self.api_key:
            errors.append("CLOUDINARY_API_KEY is required")
        if not self.api_secret:
            errors.append("CLOUDINARY_API_SECRET is required")
        return errors

    @property
    def credentials(self) -> dict[str, Any]:
        return {"cloud_name": self.cloud_name, "api_key": self.api_key, "api_secret": self.api_secret}

    async def _call(self, action: str, func: Any, *args: Any, **options: Any) -> dict[str, Any]:
        errors = self.configuration_errors()
        if errors:
            raise ExternalServiceError(
                "Cloudinary is not configured",
                service="cloudinary",
                errors=[{"field": "cloudinary", "message": message} for message in errors],
            )
        try:
            return await asyncio.to_thread(func, *args, timeout=self.timeout, **self.credentials, **options)
        except cloudinary.exceptions.Error as exc:
            logger.error("Cloudinary request failed", action=action, error=str(exc))
            raise ExternalServiceError(f"Cloudinary {action} failed: {exc}", service="cloudinary") from exc

    async def upload(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: str,
        folder: str,
    ) -> UploadResult:
        resource_type = resource_type_for(content_type)
        payload = await self._call(
            "upload",
            cloudinary.uploader.upload,
            io.BytesIO(content),
            filename=filename,
            folder=folder,
            public_id=f"{int(time.time() * 1000)}_{secrets.token_hex(6)}",
            resource_type=resource_type,
            overwrite=False,
            invalidate=True,
        )
        logger.info("File uploaded to Cloudinary", public_id=payload.get("public_id"), bytes=payload.get("bytes"))
        return UploadResult(
            public_id=payload["public_id"],
            secure_url=payload.get("secure_url") or payload.get("url", ""),
            resource_type=payload.get("resource_type", resource_type),
            bytes=int(payload.get("bytes", len(content))),
            format=payload.get("format"),
        )

    async def destroy(self, public_id: str, *, resource_type: str = "image") -> None:
        """Delete an asset; an already-missing asset counts as deleted."""
        payload = await self._call(
            "destroy",
            cloudinary.uploader.destroy,
            public_id,
            resource_type=resource_type,
            invalidate=True,
        )
        result = payload.get("result")
        if result not in ("ok", "not found"):
            raise ExternalServiceError(f"Failed to delete file: {result}", service="cloudinary")
        logger.info("File removed from Cloudinary", public_id=public_id, result=result)

    def delivery_url(
        self,
        public_id: str,
        *,
        resource_type: str = "image",
        width: int | None = None,
        height: int | None = None,
        crop: str | None = None,
        quality: str | None = None,
        fetch_format: str | None = None,
    ) -> str:
        transformation = {
            key: value
            for key, value in {
                "width": width,
                "height": height,
                "crop": crop,
                "quality": quality,
                "fetch_format": fetch_format,
            }.items()
            if value
        }
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            resource_type=resource_type,
            secure=True,
            cloud_name=self.cloud_name,
            **transformation,
        )
        return url
