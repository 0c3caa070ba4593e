"""Utility modules."""
from mock_core.utils.json_utils import (
    compact_dump,
    try_json_load,
)
from mock_core.utils.markers import extract_markers
from mock_core.utils.validation import validate_id, validate_ordinal

__all__ = [
    "compact_dump",
    "try_json_load",
    "extract_markers",
    "validate_id",
    "validate_ordinal",
]
