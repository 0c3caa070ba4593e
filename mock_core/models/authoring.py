"""Authoring-related Pydantic models."""
from typing import Any

from pydantic import BaseModel, Field


class PartContentPayload(BaseModel):
    """Model for saving part content (object or serialized string)."""

    content: Any


class PreviewRequest(BaseModel):
    """Model for a normalize-and-number preview of one part."""

    content: Any
    offset: int = Field(default=0, ge=0)


class RenumberResponse(BaseModel):
    """Model for section renumbering response."""

    savedParts: list[str]
    rangeChanges: dict[str, list[str | None]]
    upsertedOrdinals: list[int]
    deletedOrdinals: list[int]
    totalQuestions: int
