"""Pydantic models for the remote mock service contract."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResponseEnvelope(BaseModel):
    """Generic response wrapper returned by every remote endpoint."""

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    reason: str | None = None
    count: int = 0
    totalCount: int = 0
    data: Any = None


class PartDto(BaseModel):
    """Part of a section as listed by the remote service."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    ord: int
    questionCount: int = 0


class QuestionDto(BaseModel):
    """Answer-key record for one ordinal of a section."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    partId: str
    ord: int
    partOrd: int | None = None
    answers: list[str] = Field(default_factory=list)


class PartContentDto(BaseModel):
    """Persisted, possibly multiply-serialized part content."""

    model_config = ConfigDict(extra="ignore")

    content: Any = None


class SubmittedAnswerDto(BaseModel):
    """Answer previously submitted in a mock, as returned for review."""

    model_config = ConfigDict(extra="ignore")

    questionOrd: int
    answer: str | None = None
    isCorrect: bool | None = None
