import copy
import logging

from conftest import mc_part, scenario_a_part

from mock_core.services import numbering_service


def _ranges(part: dict) -> list[str]:
    return [group["range"] for group in part["questionGroups"]]


def test_placeholder_and_discrete_groups_get_consecutive_ranges() -> None:
    part = numbering_service.recalculate_ranges(scenario_a_part(), 0)
    assert _ranges(part) == ["1-3", "4-5"]


def test_empty_discrete_group_starts_after_previous_part() -> None:
    empty_part = {"questionGroups": [{"type": "TRUE_FALSE_NOT_GIVEN", "questions": []}]}
    parts = [mc_part(10), empty_part]
    assert numbering_service.compute_offset(parts, 1) == 10
    numbered = numbering_service.number_section(parts)
    assert _ranges(numbered[1]) == ["11-15"]


def test_removing_first_group_renumbers_the_rest() -> None:
    original = numbering_service.recalculate_ranges(scenario_a_part(), 0)
    edited = copy.deepcopy(original)
    del edited["questionGroups"][0]

    changes = numbering_service.recalculate_section([edited])

    assert len(changes) == 1
    assert changes[0].before == ["4-5"]
    assert changes[0].after == ["1-2"]
    assert _ranges(changes[0].part) == ["1-2"]
    assert numbering_service.vacated_ordinals([original], [changes[0].part]) == [3, 4, 5]


def test_bracket_and_html_markers_count_the_same() -> None:
    bracket = {"type": "SHORT_ANSWER", "questions": [{"text": "x [3] y [4] z [5]"}]}
    html = {
        "type": "SHORT_ANSWER",
        "questions": [
            {
                "text": '<p>x <span data-number="3"></span> y <span data-number="4"></span>'
                ' z <span data-number="5"></span></p>'
            }
        ],
    }
    assert numbering_service.count_group_questions(bracket) == 3
    assert numbering_service.count_group_questions(html) == 3


def test_placeholder_count_is_distinct_markers_across_questions() -> None:
    group = {
        "type": "SENTENCE_COMPLETION",
        "questions": [{"text": "[1] and [2]"}, {"text": '[2] then <b data-number="3">[3]</b>'}],
    }
    assert numbering_service.count_group_questions(group) == 3
    assert numbering_service.group_markers(group) == [1, 2, 3]


def test_default_group_size_for_empty_discrete_group() -> None:
    assert numbering_service.count_group_questions({"type": "MULTIPLE_CHOICE", "questions": []}) == 5
    assert numbering_service.count_group_questions({"type": "MATCH_HEADING"}) == 5


def test_single_blank_body_keeps_its_marker() -> None:
    group = {"type": "SHORT_ANSWER", "questions": "[3]"}
    assert numbering_service.count_group_questions(group) == 1
    part = numbering_service.recalculate_ranges({"questionGroups": [group]}, 2)
    assert part["questionGroups"][0]["range"] == "3-3"
    assert part["questionGroups"][0]["questions"] == [{"text": "[3]"}]


def test_placeholder_group_without_markers_owns_nothing() -> None:
    part = {
        "questionGroups": [
            {"type": "SHORT_ANSWER", "questions": [{"text": "no blanks yet"}]},
            {"type": "YES_NO_NOT_GIVEN", "questions": [{"text": "a"}]},
        ]
    }
    assert _ranges(numbering_service.recalculate_ranges(part, 4)) == ["", "5-5"]


def test_section_ranges_are_contiguous() -> None:
    parts = [
        scenario_a_part(),
        {"questionGroups": [{"type": "MATRIX_TABLE", "questions": []}]},
        mc_part(3),
        {"questionGroups": []},
        {"questionGroups": [{"type": "TABLE_COMPLETION", "questions": "<td>[9]</td><td>[10]</td>"}]},
    ]
    numbered = numbering_service.number_section(parts)
    ordinals = [o for part in numbered for o in numbering_service.part_ordinals(part)]
    assert ordinals == list(range(1, 16))


def test_unparseable_range_is_recomputed() -> None:
    part = mc_part(2)
    part["questionGroups"][0]["range"] = "banana"
    assert numbering_service.parse_range("banana") is None
    assert numbering_service.parse_range("9-3") is None
    assert numbering_service.parse_range(" 4-6 ") == (4, 6)

    changes = numbering_service.recalculate_section([part])
    assert changes[0].before == ["banana"]
    assert changes[0].after == ["1-2"]


def test_recalculate_section_returns_only_changed_parts(caplog) -> None:
    parts = numbering_service.number_section([mc_part(2), mc_part(3), mc_part(1)])
    assert numbering_service.recalculate_section(parts) == []

    parts[1]["questionGroups"][0]["questions"].append({"text": "new"})
    with caplog.at_level(logging.INFO, logger="mock_core.services.numbering_service"):
        changes = numbering_service.recalculate_section(parts)

    assert [change.index for change in changes] == [1, 2]
    assert _ranges(changes[0].part) == ["3-6"]
    assert _ranges(changes[1].part) == ["7-7"]
    assert "range corrected: '6-6' -> '7-7'" in caplog.text


def test_recalculate_is_pure() -> None:
    part = scenario_a_part()
    numbering_service.recalculate_ranges(part, 0)
    assert "range" not in part["questionGroups"][0]


def test_marker_ordinals_follow_marker_order() -> None:
    group = {"type": "SHORT_ANSWER", "range": "4-6", "questions": [{"text": "[9] [2] [5]"}]}
    assert numbering_service.marker_ordinals(group) == {2: 4, 5: 5, 9: 6}


def test_part_question_range() -> None:
    numbered = numbering_service.number_section([mc_part(2), scenario_a_part()])
    assert numbering_service.part_question_range(numbered[1]) == (3, 7)
    assert numbering_service.part_question_range({"questionGroups": []}) is None
