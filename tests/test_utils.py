import pytest
from fastapi import HTTPException

from mock_core.utils import json_utils, markers, validation


def test_extract_markers_bracket_notation() -> None:
    assert markers.extract_markers("The [1] crossed the [12] at [3].") == {1, 3, 12}


def test_extract_markers_html_attribute() -> None:
    text = '<p>Go to <span data-number="4" class="blank"></span> and <input data-number=\'5\'></p>'
    assert markers.extract_markers(text) == {4, 5}


def test_extract_markers_merges_both_encodings() -> None:
    text = '[7] <span data-number="7"></span> <span data-number="8"></span>'
    assert markers.extract_markers(text) == {7, 8}


def test_extract_markers_ignores_non_text() -> None:
    assert markers.extract_markers(None) == set()
    assert markers.extract_markers(42) == set()
    assert markers.extract_markers("[a] [] data-number=x") == set()


def test_try_json_load() -> None:
    assert json_utils.try_json_load('{"a": 1}') == (True, {"a": 1})
    assert json_utils.try_json_load("plain text") == (False, "plain text")
    assert json_utils.compact_dump({"a": [1, 2]}) == '{"a":[1,2]}'


def test_validate_id() -> None:
    assert validation.validate_id("sectionId", "  sec-1 ") == "sec-1"
    with pytest.raises(HTTPException):
        validation.validate_id("sectionId", "")
    with pytest.raises(HTTPException):
        validation.validate_id("sectionId", "../etc")


def test_validate_ordinal() -> None:
    assert validation.validate_ordinal(3) == 3
    with pytest.raises(HTTPException):
        validation.validate_ordinal(0)
