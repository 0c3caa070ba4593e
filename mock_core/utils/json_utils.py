"""JSON serialization utilities."""
import json


def compact_dump(payload: object) -> str:
    """Serialize object to compact JSON string (wire format for content)."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def try_json_load(data: str) -> tuple[bool, object]:
    """
    Deserialize JSON string without raising.
    Returns (parsed, value); value is the input itself when it is not JSON.
    """
    try:
        return True, json.loads(data)
    except (json.JSONDecodeError, TypeError, ValueError):
        return False, data
