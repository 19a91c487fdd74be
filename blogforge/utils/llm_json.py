"""Parsing of LLM JSON output.

Models wrap JSON in markdown fences, add prose around it, emit literal
newlines inside string values, leave trailing commas and get cut off at
the output token limit. Parsing runs in stages, cheapest first:

1. strip ``` fences
2. cut out the outermost {...} or [...] block
3. json.loads
4. json_repair.loads on the block (quotes, commas, truncation)

The decoded value is then validated against a pydantic model. The outcome
is a ParseResult; callers decide whether failure is fatal.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import json_repair
from pydantic import TypeAdapter, ValidationError

from blogforge.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Tagged outcome of parsing an LLM response."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult[T]":
        return cls(ok=False, error=error)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence."""
    return _FENCE_RE.sub("", text.strip()).strip()


def _extract_block(text: str) -> str:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return text[start:]
    return text[start : end + 1]


def repair_json(text: str) -> tuple[bool, Any]:
    """Decode a damaged JSON block with json_repair. Returns (ok, value).

    Only objects and arrays count as a repair; json_repair turns input it
    cannot use into an empty string.
    """
    if not text.startswith(("{", "[")):
        return False, None
    try:
        value = json_repair.loads(text)
    except (ValueError, RecursionError):
        return False, None
    if isinstance(value, (dict, list)):
        return True, value
    return False, None


def _try_json_loads(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def loads_lenient(text: str) -> tuple[bool, Any]:
    """Decode model output into a JSON value. Returns (ok, value)."""
    cleaned = _extract_block(strip_code_fences(text))
    ok, value = _try_json_loads(cleaned)
    if ok:
        return True, value
    return repair_json(cleaned)


def parse_llm_json(text: str | None, schema: type[T] | Any) -> ParseResult[T]:
    """Decode and validate model output against a pydantic model or type.

    Args:
        text: Raw model output.
        schema: A BaseModel subclass, or any type TypeAdapter accepts
            (e.g. ``list[GSCPlanCandidate]``).
    """
    if not text or not text.strip():
        return ParseResult.failure("empty response")

    ok, value = loads_lenient(text)
    if not ok:
        logger.warning(
            "All JSON parse strategies failed",
            extra={"snippet": text[:300], "length": len(text)},
        )
        return ParseResult.failure("response is not valid JSON")

    try:
        return ParseResult.success(TypeAdapter(schema).validate_python(value))
    except ValidationError as e:
        logger.warning(
            "LLM JSON failed schema validation",
            extra={"error_count": e.error_count(), "errors": str(e)[:500]},
        )
        return ParseResult.failure(f"schema validation failed: {e.error_count()} error(s)")
