import json

import pytest

from mock_core.services import content_service

GROUPS = [
    {"type": "MULTIPLE_CHOICE", "questions": [{"text": "Q1", "correctAnswer": "A"}]},
    {"type": "SHORT_ANSWER", "questions": [{"text": "a [1] b [2]"}]},
]


def test_normalize_multiply_encoded_string() -> None:
    raw = json.dumps(json.dumps(json.dumps({"questionGroups": GROUPS})))
    assert content_service.normalize_part_content(raw) == {"questionGroups": GROUPS}


def test_normalize_prefers_admin_envelope() -> None:
    raw = {
        "admin": json.dumps({"questionGroups": GROUPS, "passage": "text"}),
        "user": json.dumps({"questionGroups": []}),
    }
    result = content_service.normalize_part_content(json.dumps(raw))
    assert result["questionGroups"] == GROUPS
    assert result["passage"] == "text"
    assert "admin" not in result


def test_normalize_user_only_envelope() -> None:
    raw = {"user": {"questionGroups": GROUPS[:1]}}
    assert content_service.normalize_part_content(raw) == {"questionGroups": GROUPS[:1]}


def test_normalize_bare_list_becomes_question_groups() -> None:
    assert content_service.normalize_part_content(json.dumps(GROUPS)) == {"questionGroups": GROUPS}


def test_normalize_array_like_objects() -> None:
    raw = {
        "questionGroups": {
            "1": {"type": "SHORT_ANSWER", "questions": json.dumps({"0": {"text": "[1]"}})},
            "0": {"type": "MULTIPLE_CHOICE", "questions": {"1": {"text": "b"}, "0": {"text": "a"}}},
        }
    }
    result = content_service.normalize_part_content(raw)
    assert [group["type"] for group in result["questionGroups"]] == [
        "MULTIPLE_CHOICE",
        "SHORT_ANSWER",
    ]
    assert result["questionGroups"][0]["questions"] == [{"text": "a"}, {"text": "b"}]
    assert result["questionGroups"][1]["questions"] == [{"text": "[1]"}]


@pytest.mark.parametrize("raw", [None, "", "not json at all", 42, "[broken"])
def test_normalize_missing_content_is_empty(raw: object) -> None:
    assert content_service.normalize_part_content(raw) == {"questionGroups": []}


def test_questions_as_rich_text_blob() -> None:
    raw = {"questionGroups": [{"type": "SUMMARY_COMPLETION", "questions": "<p>[1] and [2]</p>"}]}
    result = content_service.normalize_part_content(raw)
    assert result["questionGroups"][0]["questions"] == [{"text": "<p>[1] and [2]</p>"}]


def test_questions_blob_that_parses_as_json_stays_text() -> None:
    assert content_service.coerce_questions("[3]") == [{"text": "[3]"}]
    assert content_service.coerce_questions(["[4]", {"text": "b"}]) == [{"text": "[4]"}, {"text": "b"}]
    assert content_service.coerce_questions('["a [1]", "b [2]"]') == [
        {"text": "a [1]"},
        {"text": "b [2]"},
    ]
    assert content_service.coerce_questions("[]") == []
    assert content_service.coerce_questions("null") == []


def test_is_array_like_requires_keys_from_zero() -> None:
    assert content_service.is_array_like({"1": "b", "0": "a"})
    assert content_service.is_array_like({0: "a"})
    assert not content_service.is_array_like({"2": "a", "7": "b"})
    assert not content_service.is_array_like({"1": "a"})
    assert not content_service.is_array_like({"0": "a", "x": "b"})
    assert not content_service.is_array_like({})


@pytest.mark.parametrize(
    "raw",
    [
        {"questionGroups": GROUPS},
        json.dumps(json.dumps({"admin": {"questionGroups": GROUPS}, "user": {}})),
        GROUPS,
        {"questionGroups": {"0": GROUPS[1]}, "title": "Part 2"},
        {"questionGroups": GROUPS, "user": {"questionGroups": []}},
        "garbage",
    ],
)
def test_normalize_is_idempotent(raw: object) -> None:
    once = content_service.normalize_part_content(raw)
    assert content_service.normalize_part_content(once) == once


def test_normalize_does_not_mutate_input() -> None:
    raw = {"questionGroups": {"0": {"questions": {"0": {"text": "x"}}}}}
    snapshot = json.dumps(raw)
    content_service.normalize_part_content(raw)
    assert json.dumps(raw) == snapshot


def test_coerce_list() -> None:
    assert content_service.coerce_list({"0": "a", "2": "c", "1": "b"}) == ["a", "b", "c"]
    assert content_service.coerce_list({"0": "a", "5": "b"}) == [{"0": "a", "5": "b"}]
    assert content_service.coerce_list({"2": "a", "7": "b"}) == [{"2": "a", "7": "b"}]
    assert content_service.coerce_list({"text": "x"}) == [{"text": "x"}]
    assert content_service.coerce_list({}) == []
    assert content_service.coerce_list('["x", "y"]') == ["x", "y"]
    assert content_service.coerce_list(None) == []


def test_build_content_envelope_strips_answers() -> None:
    envelope = content_service.build_content_envelope(json.dumps({"questionGroups": GROUPS}))
    assert envelope["admin"]["questionGroups"][0]["questions"][0]["correctAnswer"] == "A"
    user_question = envelope["user"]["questionGroups"][0]["questions"][0]
    assert "correctAnswer" not in user_question
    assert user_question["text"] == "Q1"
