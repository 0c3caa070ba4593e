"""
Async client for the remote mock service (test management and mock submission).

Every endpoint answers with a ``ResponseDto`` envelope
(``{"success": ..., "reason": ..., "data": ...}``); the client unwraps it and
raises ``RemoteApiError`` for transport errors, non-2xx statuses and
envelopes that are malformed or flagged ``success: false``.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from mock_core.config import MOCK_API_BASE_URL, MOCK_API_TIMEOUT_SECONDS
from mock_core.models.remote import (
    PartContentDto,
    PartDto,
    QuestionDto,
    ResponseEnvelope,
    SubmittedAnswerDto,
)
from mock_core.utils.json_utils import compact_dump

logger = logging.getLogger(__name__)


class RemoteApiError(Exception):
    """Remote call failed (transport error, HTTP error or rejected request)."""

    def __init__(self, status_code: int | None, reason: str):
        super().__init__(f"{status_code or 'network'}: {reason}")
        self.status_code = status_code
        self.reason = reason

    @property
    def is_transient(self) -> bool:
        """Network errors and 5xx responses are worth retrying."""
        return self.status_code is None or self.status_code >= 500

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        for key in ("reason", "message", "detail", "error"):
            if payload.get(key):
                return str(payload[key])
    return response.reason_phrase


def _as_list(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        # Some list endpoints nest the page under "content"
        for key in ("content", "items"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


class MockApiClient:
    """
    Thin async wrapper over the remote REST API.

    Usage:
        async with MockApiClient(token=token) as client:
            parts = await client.get_all_parts(section_id)
    """

    def __init__(
        self,
        base_url: str = MOCK_API_BASE_URL,
        token: str | None = None,
        timeout: float = MOCK_API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            response = await self.client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise RemoteApiError(None, str(exc) or type(exc).__name__) from exc

        if response.status_code >= 400:
            raise RemoteApiError(response.status_code, _error_reason(response))
        if not response.content:
            return None
        try:
            payload = response.json()
        except ValueError:
            return response.text

        if isinstance(payload, dict) and "success" in payload:
            try:
                envelope = ResponseEnvelope.model_validate(payload)
            except ValidationError as exc:
                raise RemoteApiError(
                    response.status_code, f"Malformed response envelope: {exc.error_count()} errors"
                ) from exc
            if not envelope.success:
                raise RemoteApiError(
                    response.status_code, envelope.reason or "Request rejected"
                )
            return envelope.data
        return payload

    # ------------------------------------------------------------------
    # Test management (authoring)
    # ------------------------------------------------------------------

    async def get_all_parts(self, section_id: str) -> list[PartDto]:
        """Parts of a section, ordered by ``ord``."""
        data = await self._request(
            "GET", "/test-management/get-all-part", params={"sectionId": section_id}
        )
        parts = [PartDto.model_validate(item) for item in _as_list(data)]
        return sorted(parts, key=lambda part: part.ord)

    async def get_part_content(self, part_id: str) -> str | None:
        """Raw persisted content of a part (``None`` when nothing was saved)."""
        data = await self._request(
            "GET",
            "/test-management/get-part-question-content",
            params={"partId": part_id},
        )
        if data is None or isinstance(data, str):
            return data or None
        if isinstance(data, dict):
            data = PartContentDto.model_validate(data).content
        if data is None or isinstance(data, str):
            return data or None
        return compact_dump(data)

    async def save_part_content(self, part_id: str, envelope: dict[str, Any]) -> Any:
        """Persist a ``{"admin": ..., "user": ...}`` envelope as a JSON string."""
        return await self._request(
            "POST",
            "/test-management/save-part-question-content",
            json={"partId": part_id, "content": compact_dump(envelope)},
        )

    async def get_all_questions(self, section_id: str) -> list[QuestionDto]:
        """Answer-key records of a section."""
        data = await self._request(
            "GET",
            "/test-management/get-all-question",
            params={"sectionId": section_id},
        )
        return [QuestionDto.model_validate(item) for item in _as_list(data)]

    async def create_or_update_question(
        self,
        section_id: str,
        part_id: str,
        ord: int,
        answers: list[str],
        question_id: str | None = None,
    ) -> Any:
        """Create the answer record for an ordinal, or update an existing one."""
        if question_id:
            return await self._request(
                "PUT",
                "/test-management/update-question",
                json={"id": question_id, "partId": part_id, "answers": answers},
            )
        return await self._request(
            "POST",
            "/test-management/save-question",
            json={
                "sectionId": section_id,
                "partId": part_id,
                "ord": ord,
                "answers": answers,
            },
        )

    async def delete_question(self, question_id: str) -> Any:
        return await self._request(
            "DELETE", f"/test-management/delete-question/{question_id}"
        )

    # ------------------------------------------------------------------
    # Mock submission (delivery)
    # ------------------------------------------------------------------

    async def start_mock(self, test_id: str | None = None) -> str:
        """Start a mock attempt; returns the mock id."""
        data = await self._request(
            "POST", "/mock-submission/start-mock", json={"testId": test_id}
        )
        return str(data)

    async def start_section(self, mock_id: str, section_id: str) -> Any:
        return await self._request(
            "POST",
            "/mock-submission/start-section",
            json={"mockId": mock_id, "sectionId": section_id},
        )

    async def get_section_parts(self, section_id: str) -> list[PartDto]:
        """Parts of a section as exposed to learners, ordered by ``ord``."""
        data = await self._request(
            "GET", "/mock-submission/get-all-part", params={"sectionId": section_id}
        )
        parts = [PartDto.model_validate(item) for item in _as_list(data)]
        return sorted(parts, key=lambda part: part.ord)

    async def get_section_part_content(self, part_id: str) -> str | None:
        """Learner-side content of a part."""
        data = await self._request(
            "GET",
            "/mock-submission/get-part-question-content",
            params={"partId": part_id},
        )
        if data is None or isinstance(data, str):
            return data or None
        if isinstance(data, dict):
            data = PartContentDto.model_validate(data).content
        if data is None or isinstance(data, str):
            return data or None
        return compact_dump(data)

    async def send_answer(
        self, mock_id: str, section_id: str, question_ord: int, answer: str
    ) -> Any:
        """Submit one answer; the remote side keeps the last write per ordinal."""
        return await self._request(
            "POST",
            "/mock-submission/send-answer",
            json={
                "mockId": mock_id,
                "sectionId": section_id,
                "questionOrd": question_ord,
                "answer": answer,
            },
        )

    async def finish_section(self, mock_id: str, section_id: str) -> Any:
        return await self._request(
            "POST",
            "/mock-submission/finish-section",
            json={"mockId": mock_id, "sectionId": section_id},
        )

    async def get_submitted_answers(
        self, mock_id: str, section_id: str
    ) -> list[SubmittedAnswerDto]:
        """Answers recorded for a finished section, for review mode."""
        data = await self._request(
            "GET",
            "/mock-submission/get-all-question-submitted-answers",
            params={"mockId": mock_id, "sectionId": section_id},
        )
        return [SubmittedAnswerDto.model_validate(item) for item in _as_list(data)]

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self.client.aclose()

    async def __aenter__(self) -> "MockApiClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
