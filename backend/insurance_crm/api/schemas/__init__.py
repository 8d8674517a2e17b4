"""API schema package."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, model_validator


class RequestModel(BaseModel):
    """Request body base: blank strings from HTML forms are treated as missing."""

    # Columns that cannot be cleared by a partial update
    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _blank_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: (None if isinstance(value, str) and not value.strip() else value)
                for key, value in data.items()
            }
        return data

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, for partial updates."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if not (value is None and key in self.non_nullable)
        }
