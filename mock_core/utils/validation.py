"""Validation utilities."""
from fastapi import HTTPException


def validate_id(name: str, value: str) -> str:
    """Validate identifier string coming from a request path or body."""
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{name} is required")
    cleaned = value.strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    if "/" in cleaned or "\\" in cleaned or any(ch.isspace() for ch in cleaned):
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return cleaned


def validate_ordinal(value: int) -> int:
    """Validate a question ordinal (1-based)."""
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise HTTPException(status_code=400, detail="Invalid question number")
    return value
