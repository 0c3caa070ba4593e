"""
Question numbering across the parts of a section.

Ordinals run 1..N through a section in part order, then group order, then
order inside the group. A group owns a contiguous slice of that sequence and
records it as ``range`` ("14-20"). How many ordinals a group owns depends on
its type:

- placeholder groups (fill-in-the-blank style) own one ordinal per distinct
  inline marker found in their question texts, however many question objects
  hold those markers;
- every other group owns one ordinal per question object, or
  ``DEFAULT_GROUP_SIZE`` while it has none yet.

All functions are pure: parts are plain content dicts (as produced by
``content_service.normalize_part_content``) and are copied, never mutated.
"""
from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Sequence

from mock_core.config import DEFAULT_GROUP_SIZE
from mock_core.models.content import is_placeholder_type
from mock_core.services.content_service import coerce_list, coerce_questions
from mock_core.utils.markers import extract_markers

logger = logging.getLogger(__name__)

RANGE_RE = re.compile(r"^(\d+)-(\d+)$")


@dataclass
class RangeChange:
    """A part whose group ranges changed during section recalculation."""

    index: int
    part: dict[str, Any]
    before: list[str | None]
    after: list[str | None]
    vacated_ordinals: list[int] = field(default_factory=list)


def parse_range(value: object) -> tuple[int, int] | None:
    """Parse "<start>-<end>"; anything else (or end < start) is None."""
    if not isinstance(value, str):
        return None
    match = RANGE_RE.match(value.strip())
    if not match:
        return None
    start, end = int(match.group(1)), int(match.group(2))
    if end < start:
        return None
    return start, end


def format_range(start: int, count: int) -> str:
    """Format the range of ``count`` ordinals beginning at ``start``."""
    if count <= 0:
        return ""
    return f"{start}-{start + count - 1}"


def group_markers(group: dict[str, Any]) -> list[int]:
    """Distinct marker numbers across all question texts of a group, ascending."""
    numbers: set[int] = set()
    for question in coerce_questions(group.get("questions")):
        numbers |= extract_markers(question.get("text"))
    return sorted(numbers)


def count_group_questions(
    group: dict[str, Any], default_size: int = DEFAULT_GROUP_SIZE
) -> int:
    """Number of ordinals a group owns under the type-dependent counting rule."""
    if is_placeholder_type(group.get("type")):
        return len(group_markers(group))
    questions = coerce_questions(group.get("questions"))
    return len(questions) or default_size


def part_question_count(part: dict[str, Any]) -> int:
    """Total ordinals contributed by every group of a part."""
    return sum(
        count_group_questions(group)
        for group in coerce_list(part.get("questionGroups"))
        if isinstance(group, dict)
    )


def compute_offset(parts: Sequence[dict[str, Any]], index: int) -> int:
    """Ordinal offset of ``parts[index]``: the count of all parts before it."""
    return sum(part_question_count(part) for part in parts[:index])


def group_ordinals(group: dict[str, Any]) -> list[int]:
    """Ordinals recorded by a group's current ``range`` (empty if unparseable)."""
    parsed = parse_range(group.get("range"))
    if parsed is None:
        return []
    start, end = parsed
    return list(range(start, end + 1))


def part_ordinals(part: dict[str, Any]) -> list[int]:
    """Ordinals recorded by all group ranges of a part."""
    ordinals: list[int] = []
    for group in coerce_list(part.get("questionGroups")):
        if isinstance(group, dict):
            ordinals.extend(group_ordinals(group))
    return ordinals


def part_question_range(part: dict[str, Any]) -> tuple[int, int] | None:
    """First and last ordinal of a part, from its group ranges."""
    ordinals = part_ordinals(part)
    if not ordinals:
        return None
    return min(ordinals), max(ordinals)


def marker_ordinals(group: dict[str, Any]) -> dict[int, int]:
    """
    Map each inline marker of a placeholder group to its section ordinal.
    Markers are assigned to the group's range in ascending marker order.
    """
    parsed = parse_range(group.get("range"))
    if parsed is None:
        return {}
    start, _ = parsed
    return {marker: start + i for i, marker in enumerate(group_markers(group))}


def recalculate_ranges(part: dict[str, Any], offset: int) -> dict[str, Any]:
    """
    Return a copy of ``part`` whose groups carry freshly computed ranges
    starting at ``offset + 1``. Stored ranges are ignored.
    """
    updated = copy.deepcopy(part)
    groups = []
    current_start = offset + 1
    for group in coerce_list(updated.get("questionGroups")):
        if not isinstance(group, dict):
            continue
        group["questions"] = coerce_questions(group.get("questions"))
        count = count_group_questions(group)
        group["range"] = format_range(current_start, count)
        current_start += count
        groups.append(group)
    updated["questionGroups"] = groups
    return updated


def _group_ranges(part: dict[str, Any]) -> list[str | None]:
    return [
        group.get("range")
        for group in coerce_list(part.get("questionGroups"))
        if isinstance(group, dict)
    ]


def number_section(parts: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Recalculate every part of a section in order; returns all parts."""
    numbered = []
    offset = 0
    for part in parts:
        updated = recalculate_ranges(part, offset)
        offset += part_question_count(updated)
        numbered.append(updated)
    return numbered


def vacated_ordinals(
    before: Sequence[dict[str, Any]], after: Sequence[dict[str, Any]]
) -> list[int]:
    """Ordinals owned by some group before recalculation and by none after."""
    old = {ordinal for part in before for ordinal in part_ordinals(part)}
    new = {ordinal for part in after for ordinal in part_ordinals(part)}
    return sorted(old - new)


def recalculate_section(parts: Sequence[dict[str, Any]]) -> list[RangeChange]:
    """
    Recalculate the ranges of every part of a section (given in ``ord``
    order) and return only the parts whose ranges changed.
    """
    numbered = number_section(parts)
    remaining = {ordinal for part in numbered for ordinal in part_ordinals(part)}

    changes = []
    for index, (old_part, new_part) in enumerate(zip(parts, numbered)):
        before = _group_ranges(old_part)
        after = _group_ranges(new_part)
        if before == after:
            continue
        for group_index, (old_range, new_range) in enumerate(
            zip(before + [None] * (len(after) - len(before)), after)
        ):
            if old_range != new_range:
                logger.info(
                    "Part %d group %d range corrected: %r -> %r",
                    index + 1,
                    group_index + 1,
                    old_range,
                    new_range,
                )
        vacated = sorted(set(part_ordinals(old_part)) - remaining)
        changes.append(
            RangeChange(
                index=index,
                part=new_part,
                before=before,
                after=after,
                vacated_ordinals=vacated,
            )
        )
    return changes
