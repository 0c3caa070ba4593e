"""Authoring endpoints: preview, save and renumber part content."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from mock_core.dependencies import get_api_client
from mock_core.models import PartContentPayload, PreviewRequest, RenumberResponse
from mock_core.routes.errors import remote_http_error, validation_http_error
from mock_core.services.authoring_service import (
    ContentValidationError,
    PartNotFoundError,
    collect_answer_key,
    preview_part,
    renumber_section,
    save_part,
    validate_part_content,
)
from mock_core.services.numbering_service import part_question_count
from mock_core.services.remote_api import MockApiClient, RemoteApiError
from mock_core.utils import validate_id

router = APIRouter(prefix="/api/authoring", tags=["authoring"])

ClientDep = Annotated[MockApiClient, Depends(get_api_client)]


@router.post("/preview")
def preview_content(payload: PreviewRequest) -> dict[str, object]:
    """Normalize and number one part without saving it."""
    content = preview_part(payload.content, payload.offset)
    return {
        "content": content,
        "questionCount": part_question_count(content),
        "answerKey": collect_answer_key(content),
    }


@router.post("/validate")
def validate_content(payload: PartContentPayload) -> dict[str, object]:
    """Check required fields of part content."""
    try:
        content = validate_part_content(payload.content)
    except ContentValidationError as exc:
        raise validation_http_error(exc) from exc
    return {"valid": True, "content": content}


@router.put(
    "/sections/{section_id}/parts/{part_id}/content",
    response_model=RenumberResponse,
)
async def save_part_content(
    section_id: str,
    part_id: str,
    payload: PartContentPayload,
    client: ClientDep,
) -> dict[str, object]:
    """Save a part and renumber its section."""
    section_id = validate_id("sectionId", section_id)
    part_id = validate_id("partId", part_id)
    try:
        result = await save_part(client, section_id, part_id, payload.content)
    except ContentValidationError as exc:
        raise validation_http_error(exc) from exc
    except PartNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteApiError as exc:
        raise remote_http_error(exc) from exc
    return result.to_dict()


@router.post("/sections/{section_id}/renumber", response_model=RenumberResponse)
async def renumber(section_id: str, client: ClientDep) -> dict[str, object]:
    """Recalculate ranges of every part and sync answer records."""
    section_id = validate_id("sectionId", section_id)
    try:
        result = await renumber_section(client, section_id)
    except RemoteApiError as exc:
        raise remote_http_error(exc) from exc
    return result.to_dict()
