"""Session-related Pydantic models."""
from pydantic import BaseModel, Field

from mock_core.models.content import SectionType


class SessionStartRequest(BaseModel):
    """Model for opening a section session."""

    sectionId: str = Field(..., min_length=1)
    mockId: str | None = None
    testId: str | None = None
    sectionType: SectionType = SectionType.READING
    limitSeconds: int | None = Field(default=None, gt=0)


class AnswerPayload(BaseModel):
    """Model for a learner answer; multi-select answers are lists."""

    value: str | list[str]


class ReviewEntryPayload(BaseModel):
    """Model for one graded answer shown in review mode."""

    questionOrd: int = Field(..., ge=1)
    answer: str | None = None
    isCorrect: bool | None = None


class ReviewRequest(BaseModel):
    """Model for loading review data; fetched remotely when entries are omitted."""

    entries: list[ReviewEntryPayload] | None = None


class FinishSessionResponse(BaseModel):
    """Model for section finalization response."""

    finished: bool
    error: str | None = None
    pendingAfterFlush: list[int] = Field(default_factory=list)
