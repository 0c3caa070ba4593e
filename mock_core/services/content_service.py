"""
Service layer for part content normalization.

Stored part content has been through several generations of editors and
serializers, so the same logical value can arrive as:

- a dict, or a JSON string of it, or a JSON string of that JSON string ...
- an ``{"admin": ..., "user": ...}`` envelope whose halves are themselves strings
- a bare list of question groups
- lists round-tripped into ``{"0": ..., "1": ...}`` objects

Everything here turns that into one canonical shape,
``{"questionGroups": [{"questions": [...], ...}, ...], ...}``.
"""
from __future__ import annotations

import copy
import logging
from typing import Any

from mock_core.config import CONTENT_MAX_PARSE_DEPTH
from mock_core.utils.json_utils import try_json_load

logger = logging.getLogger(__name__)

ANSWER_FIELDS = ("correctAnswer", "correctAnswers", "answer", "answers")


def unwrap_json(value: object, max_depth: int = CONTENT_MAX_PARSE_DEPTH) -> object:
    """
    Parse ``value`` as JSON repeatedly until it stops being a string.
    A string that is not valid JSON is terminal and returned unchanged.
    """
    current = value
    for _ in range(max_depth):
        if not isinstance(current, str):
            break
        parsed, result = try_json_load(current.strip())
        if not parsed:
            break
        current = result
    return current


def _int_key(key: object) -> int | None:
    if isinstance(key, int) and not isinstance(key, bool):
        return key if key >= 0 else None
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return None


def is_array_like(value: object) -> bool:
    """Check if ``value`` is a non-empty dict keyed by the integers 0..n-1."""
    if not isinstance(value, dict) or not value:
        return False
    keys = [_int_key(key) for key in value]
    if any(key is None for key in keys):
        return False
    return sorted(keys) == list(range(len(keys)))


def coerce_list(value: object) -> list[Any]:
    """
    Coerce a stored list-ish value into a real list.

    JSON strings are unwrapped first. Array-like dicts become lists in ascending
    key order; any other dict is a single element; ``None`` and scalars are empty.
    """
    value = unwrap_json(value)
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        if not value:
            return []
        if is_array_like(value):
            return [value[key] for key in sorted(value, key=_int_key)]
        return [value]
    return []


def _unwrap_questions(value: object) -> object:
    """
    Unwrap a stored questions value, keeping text that only happens to be JSON.
    A single-blank body such as ``"[3]"`` parses to ``[3]`` and stays text.
    """
    unwrapped = unwrap_json(value)
    if not isinstance(value, str) or unwrapped is None or isinstance(unwrapped, (str, dict)):
        return unwrapped
    if isinstance(unwrapped, list) and all(isinstance(item, (str, dict)) for item in unwrapped):
        return unwrapped
    return value


def _coerce_question(item: object) -> dict[str, Any] | None:
    item = _unwrap_questions(item)
    if isinstance(item, dict):
        return dict(item)
    if isinstance(item, str):
        # A bare rich-text blob (placeholder groups store one block of text)
        return {"text": item}
    return None


def coerce_questions(value: object) -> list[dict[str, Any]]:
    """Coerce a group's ``questions`` field into a list of question dicts."""
    raw = _unwrap_questions(value)
    if isinstance(raw, str):
        return [{"text": raw}] if raw.strip() else []
    questions = []
    for item in coerce_list(raw):
        question = _coerce_question(item)
        if question is not None:
            questions.append(question)
    return questions


def _normalize_group(group: object) -> dict[str, Any] | None:
    group = unwrap_json(group)
    if not isinstance(group, dict):
        return None
    normalized = dict(group)
    normalized["questions"] = coerce_questions(group.get("questions"))
    return normalized


def _select_envelope(content: dict[str, Any]) -> object | None:
    """Pick the envelope half to descend into, if ``content`` is an envelope."""
    if content.get("admin") not in (None, ""):
        return content["admin"]
    if "questionGroups" not in content and content.get("user") not in (None, ""):
        return content["user"]
    return None


def normalize_part_content(value: object) -> dict[str, Any]:
    """
    Normalize stored part content into ``{"questionGroups": [...], ...}``.

    Missing or unparseable content yields ``{"questionGroups": []}``. The
    result is a fresh structure and feeding it back in returns an equal value.
    """
    content = unwrap_json(copy.deepcopy(value))
    for _ in range(CONTENT_MAX_PARSE_DEPTH):
        if not isinstance(content, dict):
            break
        inner = _select_envelope(content)
        if inner is None:
            break
        content = unwrap_json(inner)

    if isinstance(content, list):
        content = {"questionGroups": content}
    if not isinstance(content, dict):
        if content not in (None, ""):
            logger.debug("Part content is not structured, treating as empty: %r", content)
        return {"questionGroups": []}

    normalized = {key: val for key, val in content.items() if key not in ("admin", "user")}
    if "user" in content and "questionGroups" in content:
        normalized["user"] = content["user"]
    groups = []
    for group in coerce_list(content.get("questionGroups")):
        normalized_group = _normalize_group(group)
        if normalized_group is not None:
            groups.append(normalized_group)
    normalized["questionGroups"] = groups
    return normalized


def strip_answers(content: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of normalized content with every correct-answer field removed."""
    stripped = copy.deepcopy(content)
    stripped.pop("user", None)
    for group in stripped.get("questionGroups", []):
        for field in ANSWER_FIELDS:
            group.pop(field, None)
        for question in group.get("questions", []):
            for field in ANSWER_FIELDS:
                question.pop(field, None)
    return stripped


def build_content_envelope(content: object) -> dict[str, Any]:
    """
    Build the persisted envelope: ``admin`` keeps the full structure for
    re-editing, ``user`` is the answer-free copy rendered during delivery.
    """
    admin = normalize_part_content(content)
    admin.pop("user", None)
    return {"admin": admin, "user": strip_answers(admin)}
