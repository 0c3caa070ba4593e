"""
Authoring workflow: validate, persist and renumber part content.

Saving one part renumbers the whole section, since every later part's
ordinals depend on it. Answer-key records on the remote side are kept in
step: ordinals that carry answers in the content are upserted, records of
ordinals that no longer exist are deleted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from mock_core.models.content import (
    QuestionGroupType,
    TEXTLESS_TYPES,
    group_type_key,
    is_placeholder_type,
)
from mock_core.services.content_service import (
    build_content_envelope,
    coerce_list,
    normalize_part_content,
)
from mock_core.services.numbering_service import (
    group_ordinals,
    marker_ordinals,
    number_section,
    part_ordinals,
    recalculate_ranges,
    recalculate_section,
)
from mock_core.services.remote_api import MockApiClient
from mock_core.utils.markers import extract_markers

logger = logging.getLogger(__name__)

_KNOWN_TYPES = {item.value for item in QuestionGroupType}


class ContentValidationError(ValueError):
    """Part content is missing required fields; nothing was sent."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class PartNotFoundError(LookupError):
    """Part does not belong to the section."""


@dataclass
class RenumberResult:
    """What a section renumbering changed remotely."""

    saved_parts: list[str] = field(default_factory=list)
    range_changes: dict[str, list[str | None]] = field(default_factory=dict)
    upserted_ordinals: list[int] = field(default_factory=list)
    deleted_ordinals: list[int] = field(default_factory=list)
    total_questions: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "savedParts": self.saved_parts,
            "rangeChanges": self.range_changes,
            "upsertedOrdinals": self.upserted_ordinals,
            "deletedOrdinals": self.deleted_ordinals,
            "totalQuestions": self.total_questions,
        }


def _is_blank_text(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_part_content(content: object) -> dict[str, Any]:
    """
    Normalize ``content`` and check required fields.
    Returns the normalized content; raises ContentValidationError.
    """
    normalized = normalize_part_content(content)
    errors = []
    for group_index, group in enumerate(normalized["questionGroups"], start=1):
        type_key = group_type_key(group.get("type"))
        if not type_key:
            errors.append(f"Group {group_index}: type is required")
            continue
        if type_key not in _KNOWN_TYPES:
            errors.append(f"Group {group_index}: unknown type {group.get('type')!r}")
            continue
        if type_key in TEXTLESS_TYPES or is_placeholder_type(type_key):
            continue
        for question_index, question in enumerate(group["questions"], start=1):
            if _is_blank_text(question.get("text")):
                errors.append(
                    f"Group {group_index} question {question_index}: text is required"
                )
    if errors:
        raise ContentValidationError(errors)
    return normalized


def _clean_answers(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def _question_answers(question: dict[str, Any]) -> list[str]:
    answers = _clean_answers(question.get("correctAnswers"))
    return answers or _clean_answers(question.get("correctAnswer"))


def collect_answer_key(part: dict[str, Any]) -> dict[int, list[str]]:
    """
    Correct answers of a numbered part, by ordinal.

    Discrete groups take ``correctAnswers`` / ``correctAnswer`` of the question
    at each position. Placeholder groups take ``answers[<marker>]`` from the
    question holding the marker, or its ``correctAnswer`` when the question has
    a single marker. Ordinals without answers are left out.
    """
    key: dict[int, list[str]] = {}
    for group in coerce_list(part.get("questionGroups")):
        if not isinstance(group, dict):
            continue
        questions = [q for q in coerce_list(group.get("questions")) if isinstance(q, dict)]
        if is_placeholder_type(group.get("type")):
            ordinals = marker_ordinals(group)
            for question in questions:
                markers = extract_markers(question.get("text"))
                by_marker = question.get("answers")
                for marker in sorted(markers):
                    answers: list[str] = []
                    if isinstance(by_marker, dict):
                        answers = _clean_answers(
                            by_marker.get(str(marker), by_marker.get(marker))
                        )
                    elif len(markers) == 1:
                        answers = _question_answers(question)
                    if answers and marker in ordinals:
                        key[ordinals[marker]] = answers
        else:
            for ordinal, question in zip(group_ordinals(group), questions):
                answers = _question_answers(question)
                if answers:
                    key[ordinal] = answers
    return key


async def _load_section(
    client: MockApiClient, section_id: str, overrides: dict[str, Any]
) -> tuple[list[str], list[dict[str, Any]]]:
    part_ids = []
    contents = []
    for dto in await client.get_all_parts(section_id):
        part_ids.append(dto.id)
        if dto.id in overrides:
            contents.append(normalize_part_content(overrides[dto.id]))
        else:
            contents.append(normalize_part_content(await client.get_part_content(dto.id)))
    return part_ids, contents


async def _sync_answer_records(
    client: MockApiClient,
    section_id: str,
    part_ids: list[str],
    numbered: list[dict[str, Any]],
    result: RenumberResult,
) -> None:
    owners: dict[int, str] = {}
    key: dict[int, tuple[str, list[str]]] = {}
    for part_id, part in zip(part_ids, numbered):
        for ordinal in part_ordinals(part):
            owners[ordinal] = part_id
        for ordinal, answers in collect_answer_key(part).items():
            key[ordinal] = (part_id, answers)

    records = {}
    for record in await client.get_all_questions(section_id):
        if record.ord in records or record.ord not in owners:
            # Duplicate or vacated ordinal
            await client.delete_question(record.id)
            result.deleted_ordinals.append(record.ord)
            continue
        records[record.ord] = record

    for ordinal in sorted(owners):
        record = records.get(ordinal)
        if ordinal in key:
            part_id, answers = key[ordinal]
        elif record is not None and record.partId != owners[ordinal]:
            # Answers managed elsewhere; only the owning part moved
            part_id, answers = owners[ordinal], record.answers
        else:
            continue
        if record is not None and record.partId == part_id and record.answers == answers:
            continue
        await client.create_or_update_question(
            section_id,
            part_id,
            ordinal,
            answers,
            question_id=record.id if record else None,
        )
        result.upserted_ordinals.append(ordinal)


async def renumber_section(
    client: MockApiClient,
    section_id: str,
    overrides: dict[str, Any] | None = None,
) -> RenumberResult:
    """
    Recalculate every part of a section, persist the parts whose ranges
    changed (plus any part in ``overrides``) and sync answer records.
    """
    overrides = overrides or {}
    part_ids, contents = await _load_section(client, section_id, overrides)
    missing = set(overrides) - set(part_ids)
    if missing:
        raise PartNotFoundError(f"Part not found in section {section_id}: {sorted(missing)}")

    result = RenumberResult()
    changes = {change.index: change for change in recalculate_section(contents)}
    numbered = number_section(contents)

    for index, (part_id, part) in enumerate(zip(part_ids, numbered)):
        change = changes.get(index)
        if change is None and part_id not in overrides:
            continue
        await client.save_part_content(part_id, build_content_envelope(part))
        result.saved_parts.append(part_id)
        if change is not None:
            result.range_changes[part_id] = change.after

    await _sync_answer_records(client, section_id, part_ids, numbered, result)
    result.total_questions = sum(len(part_ordinals(part)) for part in numbered)
    logger.info(
        "Section %s renumbered: %d parts saved, %d answers upserted, %d deleted",
        section_id,
        len(result.saved_parts),
        len(result.upserted_ordinals),
        len(result.deleted_ordinals),
    )
    return result


async def save_part(
    client: MockApiClient, section_id: str, part_id: str, content: object
) -> RenumberResult:
    """Validate a part's content, persist it and renumber its section."""
    normalized = validate_part_content(content)
    return await renumber_section(client, section_id, overrides={part_id: normalized})


def preview_part(content: object, offset: int = 0) -> dict[str, Any]:
    """Normalized and numbered content of one part, without persisting."""
    normalized = normalize_part_content(content)
    return recalculate_ranges(normalized, offset)
