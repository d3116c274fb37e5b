"""
Helper utilities for the itinerary pipeline.

This module provides general utility functions used across the application.
"""

import hashlib
import json
import math
import re
import uuid
from datetime import UTC, date, datetime, time
from typing import Any

from pydantic import BaseModel


def generate_session_id() -> str:
    """
    Generate a unique session ID for an itinerary request.

    Returns:
        A unique session ID string
    """
    timestamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:12]
    return f"itin-{timestamp}-{unique_part}"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def safe_serialize(obj: Any) -> Any:
    """
    Safely serialize an object to a JSON-compatible format.

    Exceptions are reduced to their type name and message so they can be
    stored in a session's error log.

    Args:
        obj: Object to serialize

    Returns:
        JSON-compatible representation of the object
    """
    if obj is None or isinstance(obj, str | int | float | bool):
        return obj

    if isinstance(obj, datetime | date | time):
        return obj.isoformat()

    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}

    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")

    if isinstance(obj, list | tuple | set | frozenset):
        return [safe_serialize(item) for item in obj]

    if isinstance(obj, dict):
        return {str(k): safe_serialize(v) for k, v in obj.items()}

    result = safe_serialize(obj.__dict__) if hasattr(obj, "__dict__") else str(obj)
    return result


def stable_hash(*parts: Any) -> str:
    """
    Build a short deterministic hash over JSON-serializable values.

    Args:
        *parts: Values to include in the hash

    Returns:
        First 16 hex characters of the SHA-256 digest
    """
    payload = json.dumps(
        [safe_serialize(part) for part in parts], sort_keys=True, default=str
    )
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


def extract_first_int(value: Any) -> int | None:
    """
    Extract the first integer from a value such as ``"2 days"`` or ``3``.

    Args:
        value: Number, string or None

    Returns:
        The first integer found, or None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None

    match = re.search(r"\d+", str(value))
    return int(match.group()) if match else None


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length, adding a suffix if truncated.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix
