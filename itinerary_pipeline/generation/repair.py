"""
Deterministic JSON recovery for model output.

Model responses arrive wrapped in markdown, surrounded by prose, truncated or
with small syntax errors. ``parse_model_output`` tries a fixed sequence of
recovery strategies and returns the first value that decodes; ``coerce_shape``
then normalizes common near-miss structures before schema validation.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from itinerary_pipeline.utils.error_handling import ParsingFailure
from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ACTIVITY_IMAGE = "/images/placeholders/default-itinerary.jpg"

_CODE_BLOCK_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][A-Za-z0-9_$]*)\s*:")
_SINGLE_QUOTED_VALUE_RE = re.compile(r":\s*'([^'\"]*)'")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WRAPPER_KEYS = ("itinerary", "data", "result", "response", "output")
MAX_WRAPPER_DEPTH = 5

_ACTIVITY_ALIASES = {
    "description": "desc",
    "name": "title",
    "timeSlot": "time",
    "time_slot": "time",
    "duration": "time",
    "imageUrl": "image",
    "image_url": "image",
}


@dataclass(frozen=True)
class ParsedOutput:
    """A decoded JSON value and the strategy that recovered it."""

    value: Any
    strategy: str


def _direct(text: str) -> Any:
    return json.loads(text)


def _code_block(text: str) -> Any:
    for match in _CODE_BLOCK_RE.finditer(text):
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
    raise ValueError("No valid JSON in code blocks")


def _brace_span(text: str) -> Any:
    span = extract_brace_span(text)
    if span is None:
        raise ValueError("No brace-delimited span found")
    return json.loads(span)


def _syntax_repair(text: str) -> Any:
    return json.loads(fix_common_syntax(text))


def _bracket_balance(text: str) -> Any:
    return json.loads(balance_brackets(fix_common_syntax(text)))


STRATEGIES: tuple[tuple[str, Callable[[str], Any]], ...] = (
    ("direct", _direct),
    ("code_block", _code_block),
    ("brace_span", _brace_span),
    ("syntax_repair", _syntax_repair),
    ("bracket_balance", _bracket_balance),
)


def extract_brace_span(text: str) -> str | None:
    """Return the text from the first ``{`` to the last ``}``, if any."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return text[first : last + 1]


def fix_common_syntax(text: str) -> str:
    """
    Apply textual fixes for the syntax errors models commonly make.

    Strips markdown fences and surrounding prose, control characters,
    trailing commas and single-quoted values, and quotes bare object keys.

    Args:
        text: Raw model output

    Returns:
        The repaired text (not guaranteed to be valid JSON)
    """
    fixed = text.strip()
    fixed = re.sub(r"```(?:json|JSON)?\s*|\s*```", "", fixed)

    first = fixed.find("{")
    if first > 0:
        fixed = fixed[first:]
    last = fixed.rfind("}")
    if last != -1 and last < len(fixed) - 1:
        fixed = fixed[: last + 1]

    fixed = _CONTROL_CHARS_RE.sub("", fixed)
    fixed = _TRAILING_COMMA_RE.sub(r"\1", fixed)
    fixed = _UNQUOTED_KEY_RE.sub(r'\1"\2":', fixed)
    fixed = _SINGLE_QUOTED_VALUE_RE.sub(r': "\1"', fixed)
    return fixed


def balance_brackets(text: str) -> str:
    """
    Close any string, object or array left open by truncated output.

    Args:
        text: JSON-like text, possibly cut off mid-value

    Returns:
        Text with the missing closing characters appended
    """
    stack: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            stack.append("}")
        elif char == "[":
            stack.append("]")
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()

    balanced = text + ('"' if in_string else "")
    balanced = re.sub(r"[\s,:]+$", "", balanced)
    balanced = _TRAILING_COMMA_RE.sub(r"\1", balanced)
    return balanced + "".join(reversed(stack))


def parse_model_output(text: str) -> ParsedOutput:
    """
    Decode a model response using the first strategy that succeeds.

    A decoded value that is itself a JSON document encoded as a string is
    decoded once more.

    Args:
        text: Raw model output

    Returns:
        The decoded value and the name of the strategy used

    Raises:
        ParsingFailure: If no strategy yields a JSON value
    """
    if not text or not text.strip():
        raise ParsingFailure("Empty model response")

    for name, strategy in STRATEGIES:
        # RecursionError comes from pathologically nested arrays or objects
        try:
            value = strategy(text)
        except (ValueError, RecursionError):
            continue

        if isinstance(value, str):
            try:
                value = json.loads(value)
                name = f"{name}+nested"
            except (ValueError, RecursionError):
                continue

        logger.debug(f"Model output decoded with strategy '{name}'")
        return ParsedOutput(value=value, strategy=name)

    raise ParsingFailure("No recovery strategy produced valid JSON")


def coerce_shape(value: Any) -> Any:
    """
    Normalize near-miss structures toward the itinerary shape.

    Unwraps wrapper objects (``{"itinerary": {...}}``, possibly several levels
    deep, such as ``{"data": {"result": {...}}}``), promotes a bare
    list of periods to ``{"items": [...]}``, renames common activity field
    aliases, turns a single tag string into a list and fills a missing image
    with the placeholder. Anything else is left for schema validation to
    report.

    Args:
        value: Decoded JSON value

    Returns:
        The normalized value (a new object; the input is not modified)
    """
    if isinstance(value, list):
        value = {"items": value}

    if not isinstance(value, dict):
        return value

    unwrapped = _unwrap(value)
    if unwrapped is not None:
        value = unwrapped

    result = dict(value)
    items = result.get("items")
    if isinstance(items, list):
        result["items"] = [_coerce_period(item) for item in items]
    return result


def _unwrap(value: dict[str, Any]) -> dict[str, Any] | None:
    """Follow wrapper keys down to the first object holding ``items``."""
    current = value
    for _ in range(MAX_WRAPPER_DEPTH + 1):
        if "items" in current:
            return current if current is not value else None
        inner = next(
            (current[key] for key in _WRAPPER_KEYS if isinstance(current.get(key), dict)),
            None,
        )
        if inner is None:
            return None
        current = inner
    return None


def _coerce_period(period: Any) -> Any:
    if not isinstance(period, dict):
        return period

    result = dict(period)
    if "period" not in result:
        for alias in ("name", "timeOfDay", "day"):
            if isinstance(result.get(alias), str):
                result["period"] = result.pop(alias)
                break

    activities = result.get("activities")
    if activities is None:
        result["activities"] = []
    elif isinstance(activities, list):
        result["activities"] = [_coerce_activity(activity) for activity in activities]
    return result


def _coerce_activity(activity: Any) -> Any:
    if not isinstance(activity, dict):
        return activity

    result = dict(activity)
    for alias, target in _ACTIVITY_ALIASES.items():
        if alias in result and target not in result:
            result[target] = result.pop(alias)

    tags = result.get("tags")
    if isinstance(tags, str):
        result["tags"] = [tag.strip() for tag in tags.split(",") if tag.strip()]
    elif tags is None:
        result["tags"] = []

    if not result.get("image"):
        result["image"] = DEFAULT_ACTIVITY_IMAGE
    return result
