"""Pydantic models."""
from mock_core.models.authoring import PartContentPayload, PreviewRequest, RenumberResponse
from mock_core.models.content import QuestionGroupType, SectionType
from mock_core.models.remote import (
    PartContentDto,
    PartDto,
    QuestionDto,
    ResponseEnvelope,
    SubmittedAnswerDto,
)
from mock_core.models.sessions import (
    AnswerPayload,
    FinishSessionResponse,
    ReviewEntryPayload,
    ReviewRequest,
    SessionStartRequest,
)

__all__ = [
    "AnswerPayload",
    "FinishSessionResponse",
    "PartContentDto",
    "PartContentPayload",
    "PartDto",
    "PreviewRequest",
    "QuestionDto",
    "QuestionGroupType",
    "RenumberResponse",
    "ResponseEnvelope",
    "ReviewEntryPayload",
    "ReviewRequest",
    "SectionType",
    "SessionStartRequest",
    "SubmittedAnswerDto",
]
