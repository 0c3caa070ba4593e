"""Question content enumerations shared by authoring and delivery."""
from enum import Enum


class SectionType(str, Enum):
    """Exam section type."""

    LISTENING = "listening"
    READING = "reading"
    WRITING = "writing"
    SPEAKING = "speaking"


class QuestionGroupType(str, Enum):
    """Type of a question group."""

    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    MULTIPLE_CHOICE_SINGLE = "MULTIPLE_CHOICE_SINGLE"
    MULTIPLE_QUESTIONS_MULTIPLE_CHOICE = "MULTIPLE_QUESTIONS_MULTIPLE_CHOICE"
    TRUE_FALSE_NOT_GIVEN = "TRUE_FALSE_NOT_GIVEN"
    YES_NO_NOT_GIVEN = "YES_NO_NOT_GIVEN"
    MATCH_HEADING = "MATCH_HEADING"
    SENTENCE_COMPLETION = "SENTENCE_COMPLETION"
    SUMMARY_COMPLETION = "SUMMARY_COMPLETION"
    SHORT_ANSWER = "SHORT_ANSWER"
    MATRIX_TABLE = "MATRIX_TABLE"
    TABLE_COMPLETION = "TABLE_COMPLETION"
    MULTIPLE_CORRECT_ANSWERS = "MULTIPLE_CORRECT_ANSWERS"
    IMAGE_INPUTS = "IMAGE_INPUTS"
    FILL_IN_BLANKS_DRAG_DROP = "FILL_IN_BLANKS_DRAG_DROP"


# Groups whose ordinals come from inline markers in rich text
PLACEHOLDER_TYPES = frozenset(
    {
        QuestionGroupType.SHORT_ANSWER.value,
        QuestionGroupType.SENTENCE_COMPLETION.value,
        QuestionGroupType.SUMMARY_COMPLETION.value,
        QuestionGroupType.TABLE_COMPLETION.value,
        QuestionGroupType.FILL_IN_BLANKS_DRAG_DROP.value,
    }
)

# Discrete groups that carry no free-text question body
TEXTLESS_TYPES = frozenset(
    {
        QuestionGroupType.IMAGE_INPUTS.value,
        QuestionGroupType.MATCH_HEADING.value,
    }
)


def group_type_key(value: object) -> str:
    """Normalize a stored group type ("short_answer", "SHORT_ANSWER") to its key."""
    if isinstance(value, QuestionGroupType):
        return value.value
    if not isinstance(value, str):
        return ""
    return value.strip().upper().replace("-", "_").replace(" ", "_")


def is_placeholder_type(value: object) -> bool:
    """Check whether a group type derives its ordinals from inline markers."""
    return group_type_key(value) in PLACEHOLDER_TYPES
