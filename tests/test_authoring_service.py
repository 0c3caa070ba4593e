import asyncio
import json

import pytest
from conftest import mc_part, scenario_a_part

from mock_core.services.authoring_service import (
    ContentValidationError,
    PartNotFoundError,
    collect_answer_key,
    preview_part,
    renumber_section,
    save_part,
    validate_part_content,
)
from mock_core.services.content_service import build_content_envelope, normalize_part_content
from mock_core.services.numbering_service import number_section


@pytest.fixture
def section(remote):
    remote.add_part("sec-1", "p1", 1, json.dumps(build_content_envelope(scenario_a_part())))
    remote.add_part("sec-1", "p2", 2, json.dumps(build_content_envelope(mc_part(2))))
    return remote


def _stored_ranges(remote, part_id: str) -> list[str]:
    content = normalize_part_content(remote.contents[part_id])
    return [group.get("range") for group in content["questionGroups"]]


def _record_ords(remote) -> dict[int, tuple[str, list[str]]]:
    return {q["ord"]: (q["partId"], q["answers"]) for q in remote.questions.values()}


def test_validate_part_content_reports_missing_fields() -> None:
    content = {
        "questionGroups": [
            {"questions": [{"text": "x"}]},
            {"type": "MULTIPLE_CHOICE", "questions": [{"text": "ok"}, {"text": "  "}]},
            {"type": "IMAGE_INPUTS", "questions": [{"image": "map.png"}]},
            {"type": "SHORT_ANSWER", "questions": []},
            {"type": "ESSAY"},
        ]
    }
    with pytest.raises(ContentValidationError) as exc_info:
        validate_part_content(content)
    assert exc_info.value.errors == [
        "Group 1: type is required",
        "Group 2 question 2: text is required",
        "Group 5: unknown type 'ESSAY'",
    ]


def test_validate_part_content_accepts_lowercase_types() -> None:
    content = {"questionGroups": [{"type": "true_false_not_given", "questions": [{"text": "a"}]}]}
    assert validate_part_content(json.dumps(content))["questionGroups"][0]["questions"] == [
        {"text": "a"}
    ]


def test_collect_answer_key() -> None:
    numbered = preview_part(scenario_a_part())
    assert collect_answer_key(numbered) == {1: ["river"], 2: ["bridge"], 4: ["A"], 5: ["B"]}

    part = {
        "questionGroups": [
            {"type": "MULTIPLE_CORRECT_ANSWERS", "questions": [{"text": "Pick two", "correctAnswers": ["A", "D"]}]},
            {
                "type": "SENTENCE_COMPLETION",
                "questions": [
                    {"text": "The [1] is", "correctAnswer": "sun"},
                    {"text": "and [2] too", "correctAnswer": " moon "},
                ],
            },
        ]
    }
    assert collect_answer_key(preview_part(part)) == {1: ["A", "D"], 2: ["sun"], 3: ["moon"]}


def test_save_part_renumbers_following_parts(section) -> None:
    content = scenario_a_part()
    content["questionGroups"][1]["questions"].append({"text": "Third?", "correctAnswer": "C"})

    result = asyncio.run(save_part(section.client(), "sec-1", "p1", content))

    assert result.saved_parts == ["p1", "p2"]
    assert result.range_changes == {"p1": ["1-3", "4-6"], "p2": ["7-8"]}
    assert _stored_ranges(section, "p1") == ["1-3", "4-6"]
    assert _stored_ranges(section, "p2") == ["7-8"]
    assert result.upserted_ordinals == [1, 2, 4, 5, 6, 7, 8]
    assert _record_ords(section)[6] == ("p1", ["C"])
    assert _record_ords(section)[8] == ("p2", ["C"])
    assert result.total_questions == 8

    stored = json.loads(section.contents["p1"])
    assert "correctAnswer" not in stored["user"]["questionGroups"][1]["questions"][0]


def test_save_part_validation_happens_before_network(section) -> None:
    with pytest.raises(ContentValidationError):
        asyncio.run(save_part(section.client(), "sec-1", "p1", {"questionGroups": [{}]}))
    assert section.requests == []


def test_save_part_unknown_part(section) -> None:
    with pytest.raises(PartNotFoundError):
        asyncio.run(save_part(section.client(), "sec-1", "p9", mc_part(1)))
    assert section.saved_contents == []


def test_renumber_syncs_answer_records(section) -> None:
    section.add_question("sec-1", "p1", 1, ["river"])
    section.add_question("sec-1", "p2", 3, ["manual"])
    section.add_question("sec-1", "p2", 9, ["gone"])
    section.add_question("sec-1", "p1", 1, ["duplicate"])

    result = asyncio.run(renumber_section(section.client(), "sec-1"))

    assert sorted(result.deleted_ordinals) == [1, 9]
    assert 1 not in result.upserted_ordinals
    records = _record_ords(section)
    assert records[1] == ("p1", ["river"])
    assert records[3] == ("p1", ["manual"])
    assert 9 not in records
    assert sorted(records) == [1, 2, 3, 4, 5, 6, 7]


def test_renumber_consistent_section_saves_no_parts(remote) -> None:
    numbered = number_section([scenario_a_part(), mc_part(2)])
    remote.add_part("sec-1", "p1", 1, build_content_envelope(numbered[0]))
    remote.add_part("sec-1", "p2", 2, build_content_envelope(numbered[1]))

    result = asyncio.run(renumber_section(remote.client(), "sec-1"))

    assert result.saved_parts == []
    assert remote.saved_contents == []
    assert result.total_questions == 7
